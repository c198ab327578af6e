"""Basic smoke tests for cloud_trace.

Quick sanity checks that the public API imports and a traced request works
end to end. Detailed behaviour is covered by the other test modules.
"""

import threading

import pytest

import cloud_trace
from cloud_trace import runtime_config


def test_version_exposed():
    """Smoke test: version is accessible."""
    assert hasattr(cloud_trace, '__version__')
    assert isinstance(cloud_trace.__version__, str)
    assert len(cloud_trace.__version__) > 0


def test_configure_sets_process_defaults():
    """Smoke test: configure() sets the default sampler and project."""
    sampler = cloud_trace.ProbabilitySampler(1.0)
    try:
        cloud_trace.configure(project_id="smoke-project", sampler=sampler)
        assert runtime_config.get_default_sampler() is sampler
        assert runtime_config.get_project_id() == "smoke-project"
    finally:
        runtime_config.reset()


def test_default_sampler_is_rate_based():
    try:
        assert isinstance(runtime_config.get_default_sampler(), cloud_trace.RateSampler)
    finally:
        runtime_config.reset()


def test_default_sampler_created_once_across_threads():
    barrier = threading.Barrier(8)
    samplers = []

    def read():
        barrier.wait()
        samplers.append(runtime_config.get_default_sampler())

    threads = [threading.Thread(target=read) for _ in range(8)]
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len({id(sampler) for sampler in samplers}) == 1
    finally:
        runtime_config.reset()


def test_traced_request_with_console_reporter(capsys):
    """Smoke test: a request through the middleware prints its root span."""
    def app(environ, start_response):
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [b"ok"]

    middleware = cloud_trace.TraceMiddleware(
        app,
        service=cloud_trace.ConsoleReporter(),
        sampler=cloud_trace.ProbabilitySampler(1.0),
    )
    headers = {}

    def start_response(status, response_headers, exc_info=None):
        headers.update(response_headers)

    body = middleware({"PATH_INFO": "/smoke", "REQUEST_METHOD": "GET"}, start_response)

    assert list(body) == [b"ok"]
    assert "X-Cloud-Trace-Context" in headers
    assert "name=/smoke" in capsys.readouterr().out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
