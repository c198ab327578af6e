"""Samplers deciding which requests are traced."""

from cloud_trace.processors.sampler import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ProbabilitySampler,
    RateSampler,
    Sampler,
)

__all__ = [
    "Sampler",
    "ProbabilitySampler",
    "RateSampler",
    "ALWAYS_ON",
    "ALWAYS_OFF",
]
