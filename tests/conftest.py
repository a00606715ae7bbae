import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dealerops.config import get_settings  # noqa: E402
from dealerops.scheduling.models import Job, JobPart  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep a developer's `.env` and environment out of the tests."""

    for name in (
        "POSTGREST_URL",
        "POSTGREST_API_KEY",
        "SCHEDULE_TIMEZONE",
        "INCLUDE_PROMISED_ONLY",
        "CONFLICT_BUFFER_MINUTES",
        "LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_job(job_id: str = "job-1", **fields) -> Job:
    """Build a job; ``parts`` may be given as dicts of JobPart fields."""

    parts = fields.pop("parts", ())
    fields["parts"] = tuple(p if isinstance(p, JobPart) else JobPart(**p) for p in parts)
    return Job(id=job_id, **fields)
