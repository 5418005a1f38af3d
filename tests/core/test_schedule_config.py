"""
Tests for schedule configuration loading.

Tests: defaults when the file is missing, YAML overrides merged onto
defaults, weekday dispatch with daily pipelines appended.
"""

from contentfactory.core.config import DEFAULT_SCHEDULE, load_schedule_config, pipelines_for_day


class TestLoadScheduleConfig:

    def test_missing_file_uses_defaults(self, tmp_path):
        schedule = load_schedule_config(str(tmp_path / "missing.yml"))
        assert schedule["days"] == DEFAULT_SCHEDULE["days"]
        assert schedule["daily"] == ["healer"]

    def test_yaml_overrides_merge_onto_defaults(self, tmp_path):
        path = tmp_path / "schedule.yml"
        path.write_text(
            "days:\n"
            "  Saturday: [seo]\n"
            "pipelines:\n"
            "  seo:\n"
            "    max_posts_to_optimize: 2\n"
        )
        schedule = load_schedule_config(str(path))

        assert schedule["days"]["saturday"] == ["seo"]
        assert schedule["days"]["monday"] == ["content"]
        assert schedule["pipelines"]["seo"]["max_posts_to_optimize"] == 2
        assert schedule["pipelines"]["seo"]["min_score_threshold"] == 90

    def test_defaults_not_mutated(self, tmp_path):
        path = tmp_path / "schedule.yml"
        path.write_text("pipelines:\n  podcast:\n    lookback_days: 3\n")
        load_schedule_config(str(path))
        assert DEFAULT_SCHEDULE["pipelines"]["podcast"]["lookback_days"] == 7


class TestPipelinesForDay:

    def test_weekday_pipelines_then_daily(self):
        schedule = load_schedule_config("/nonexistent/schedule.yml")
        assert pipelines_for_day(schedule, "Monday") == ["content", "healer"]
        assert pipelines_for_day(schedule, "wednesday") == ["podcast", "healer"]
        assert pipelines_for_day(schedule, "sunday") == ["healer"]

    def test_daily_pipeline_not_duplicated(self):
        schedule = {"days": {"monday": ["healer", "content"]}, "daily": ["healer"], "pipelines": {}}
        assert pipelines_for_day(schedule, "monday") == ["healer", "content"]
