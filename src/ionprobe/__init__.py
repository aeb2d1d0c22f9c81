"""Top-level IonProbe package API."""

from ionprobe.application.pipeline import PipelineReport, PipelineState, run_pipeline
from ionprobe.domain.credentials import CredentialBundle, load_credentials

__all__ = [
    "CredentialBundle",
    "PipelineReport",
    "PipelineState",
    "load_credentials",
    "run_pipeline",
]
