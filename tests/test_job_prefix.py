"""Tests for job tag extraction and colored prefixes."""

from logbench.job_prefix import (
    JOB_COLORS,
    build_job_prefix,
    extract_job_info,
    has_job_prefix,
    pick_job_color,
)


class TestExtractJobInfo:
    def test_active_job_tags(self):
        assert extract_job_info(["ActiveJob", "EmailJob", "abc-123"]) == ("abc-123", "EmailJob")

    def test_extra_tags_ignored(self):
        assert extract_job_info(["ActiveJob", "EmailJob", "abc-123", "extra"]) == ("abc-123", "EmailJob")

    def test_not_a_job(self):
        assert extract_job_info(None) is None
        assert extract_job_info("ActiveJob") is None
        assert extract_job_info(["ActiveJob", "EmailJob"]) is None
        assert extract_job_info(["Sidekiq", "EmailJob", "abc"]) is None
        assert extract_job_info(["ActiveJob", "", "abc"]) is None


class TestPrefix:
    def test_color_is_stable_and_in_palette(self):
        color = pick_job_color("abc-123")
        assert color in JOB_COLORS
        assert pick_job_color("abc-123") == color

    def test_color_from_byte_sum(self):
        # sum(b"job-1") == 409, 409 % 6 == 1
        assert pick_job_color("job-1") == 32

    def test_build_prefix(self):
        assert build_job_prefix("EmailJob", "job-1") == "\033[1m\033[32m[EmailJob#job-1]\033[0m"

    def test_namespaced_class(self):
        prefix = build_job_prefix("Billing::ChargeJob", "x1")
        assert "[Billing::ChargeJob#x1]" in prefix
        assert has_job_prefix(prefix)

    def test_has_job_prefix(self):
        assert has_job_prefix("[EmailJob#abc] Performing")
        assert has_job_prefix(build_job_prefix("EmailJob", "abc") + " Performing")
        assert not has_job_prefix("Performing EmailJob")
        assert not has_job_prefix("\033[1m\033[32mplain\033[0m")
