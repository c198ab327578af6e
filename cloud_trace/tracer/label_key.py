"""Standard span label keys understood by the Cloud Trace UI."""

from __future__ import annotations

import json
import traceback
from typing import Dict


AGENT = "/agent"
COMPONENT = "/component"
ERROR_MESSAGE = "/error/message"
ERROR_NAME = "/error/name"
HTTP_CLIENT_CITY = "/http/client_city"
HTTP_CLIENT_COUNTRY = "/http/client_country"
HTTP_CLIENT_PROTOCOL = "/http/client_protocol"
HTTP_CLIENT_REGION = "/http/client_region"
HTTP_HOST = "/http/host"
HTTP_METHOD = "/http/method"
HTTP_REDIRECTED_URL = "/http/redirected_url"
HTTP_REQUEST_SIZE = "/http/request/size"
HTTP_RESPONSE_SIZE = "/http/response/size"
HTTP_STATUS_CODE = "/http/status_code"
HTTP_URL = "/http/url"
HTTP_USER_AGENT = "/http/user_agent"
PID = "/pid"
STACKTRACE = "/stacktrace"
TID = "/tid"

GAE_APPLICATION_ERROR = "g.co/gae/application_error"
GAE_APP_MODULE = "g.co/gae/app/module"
GAE_APP_MODULE_VERSION = "g.co/gae/app/module_version"
GAE_APP_VERSION = "g.co/gae/app/version"

# Keep the serialized label under the API's label value limit.
MAX_STACK_FRAMES = 64


def set_stack_trace(labels: Dict[str, str], skip_frames: int = 1) -> None:
    """
    Capture the caller's stack into the ``/stacktrace`` label.

    Frames are ordered innermost first. ``skip_frames`` drops that many of
    the innermost frames, counting this function as one.
    """
    frames = traceback.extract_stack()[:-skip_frames] if skip_frames else traceback.extract_stack()
    stack_frames = [
        {
            "file_name": frame.filename,
            "line_number": frame.lineno,
            "method_name": frame.name,
        }
        for frame in reversed(frames)
    ]
    labels[STACKTRACE] = json.dumps({"stack_frame": stack_frames[:MAX_STACK_FRAMES]})
