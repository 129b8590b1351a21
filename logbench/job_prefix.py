"""Job attribution helpers: tag extraction and colored [JobClass#job_id] prefixes."""

import re

JOB_TAG_MARKER = "ActiveJob"

# Standard (non-bright) ANSI foreground colors: red, green, yellow, blue, magenta, cyan
JOB_COLORS = (31, 32, 33, 34, 35, 36)

JOB_PREFIX_RE = re.compile(r"\[[\w:]+#[^\]]+\]")


def extract_job_info(tags) -> tuple[str, str] | None:
    """Return (job_id, job_class) from ["ActiveJob", "JobClass", "job-id", ...] tags."""
    if not isinstance(tags, list) or len(tags) < 3:
        return None
    if tags[0] != JOB_TAG_MARKER:
        return None
    job_class, job_id = tags[1], tags[2]
    if not job_class or not job_id:
        return None
    return str(job_id), str(job_class)


def pick_job_color(job_id: str) -> int:
    """Same job id always maps to the same color."""
    return JOB_COLORS[sum(str(job_id).encode("utf-8")) % len(JOB_COLORS)]


def build_job_prefix(job_class: str, job_id: str) -> str:
    color = pick_job_color(job_id)
    return f"\033[1m\033[{color}m[{job_class}#{job_id}]\033[0m"


def has_job_prefix(text: str) -> bool:
    return JOB_PREFIX_RE.search(text) is not None
