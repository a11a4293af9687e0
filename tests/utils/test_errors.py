from pathlib import Path

from Mindustry_Loom.pipeline.errors import (
    ConfigurationError,
    CorruptArchiveError,
    MissingInputError,
    PipelineError,
    TransformFailureError,
    TransientIOError,
)
from Mindustry_Loom.utils.errors import FoundationError, ProblemDetail


def test_problem_detail_model_dump_drops_empty_fields():
    problem = ProblemDetail(title="Error", status=400, detail="Bad")
    payload = problem.model_dump()
    assert payload == {"title": "Error", "status": 400, "detail": "Bad", "type": "about:blank"}


def test_foundation_error_wraps_problem():
    error = FoundationError("Oops", status=404)
    assert error.problem.status == 404
    assert isinstance(error, RuntimeError)


def test_pipeline_error_names_stage_paths_and_cause():
    try:
        try:
            raise OSError("disk full")
        except OSError as exc:
            raise TransientIOError("write failed", stage="merge", paths=[Path("/c/merged.jar")]) from exc
    except TransientIOError as error:
        text = str(error)
    assert text == "[merge] write failed (paths: /c/merged.jar): OSError: disk full"


def test_pipeline_error_problem_payload():
    error = MissingInputError("missing", stage="acquire", missing=[Path("/c/a.jar")], present=[Path("/c/b.jar")])
    payload = error.problem.model_dump()
    assert payload["status"] == 424
    assert payload["type"] == "urn:mindustry-loom:error:missing-input"
    assert payload["extra"]["stage"] == "acquire"
    assert payload["extra"]["missing"] == ["/c/a.jar"]
    assert error.paths == ("/c/a.jar", "/c/b.jar")


def test_taxonomy_shares_base_class():
    for cls in (ConfigurationError, CorruptArchiveError, TransformFailureError, TransientIOError):
        assert issubclass(cls, PipelineError)
