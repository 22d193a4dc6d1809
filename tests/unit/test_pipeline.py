"""
Unit tests for the aggregation pipeline builder.

Tests:
- Visual stage compilation (enabled filter, order, bad bodies)
- Raw pipeline parsing
- Stage list editing
- Rendering between the raw and visual editors
"""

import json

import pytest

from mongoman.constants import EMPTY_RAW_PIPELINE, STAGE_TEMPLATES, STAGE_TYPES
from mongoman.exceptions import PipelineBuildError, QueryBuildError
from mongoman.query.pipeline import (PipelineStage, StageList, build_pipeline,
                                     parse_raw_pipeline, pipeline_to_stages,
                                     render_raw_pipeline, stage_catalog)


@pytest.mark.unit
class TestBuildPipeline:
    """Test build_pipeline."""

    def test_enabled_stages_in_order(self):
        stages = [
            PipelineStage("$match", '{"a": 1}'),
            PipelineStage("$sort", '{"a": -1}', enabled=False),
            PipelineStage("$limit", "5"),
        ]
        assert build_pipeline(stages) == [{"$match": {"a": 1}}, {"$limit": 5}]

    def test_no_stages(self):
        assert build_pipeline([]) == []

    def test_any_verb_is_accepted(self):
        assert build_pipeline([PipelineStage("$sample", '{"size": 3}')]) == [
            {"$sample": {"size": 3}}
        ]

    def test_invalid_body_names_stage(self):
        stages = [
            PipelineStage("$match", "{}", enabled=False),
            PipelineStage("$match", "{}"),
            PipelineStage("$group", "{_id: 1"),
        ]
        with pytest.raises(PipelineBuildError) as exc_info:
            build_pipeline(stages)
        error = exc_info.value
        assert "Invalid stage value" in error.message
        assert error.stage_index == 1
        assert error.stage_type == "$group"

    def test_disabled_invalid_stage_is_ignored(self):
        stages = [PipelineStage("$group", "{oops", enabled=False)]
        assert build_pipeline(stages) == []

    def test_new_stage_body_comes_from_template(self):
        assert PipelineStage("$limit").body == STAGE_TEMPLATES["$limit"]
        assert PipelineStage("$sample").body == "{}"

    def test_stage_catalog(self):
        catalog = stage_catalog()
        assert [entry["type"] for entry in catalog] == list(STAGE_TYPES)
        match = catalog[0]
        assert match == {
            "type": "$match",
            "description": "Filter documents",
            "template": STAGE_TEMPLATES["$match"],
        }
        for entry in catalog:
            assert entry["description"]
            json.loads(entry["template"])


@pytest.mark.unit
class TestParseRawPipeline:
    """Test raw pipeline parsing."""

    def test_array(self):
        assert parse_raw_pipeline('[{"$match": {}}]') == [{"$match": {}}]

    def test_scalar_is_rejected(self):
        with pytest.raises(PipelineBuildError, match="Pipeline must be a JSON array"):
            parse_raw_pipeline('"not an array"')

    def test_object_is_rejected(self):
        with pytest.raises(PipelineBuildError, match="must be a JSON array"):
            parse_raw_pipeline('{"$match": {}}')

    def test_invalid_json(self):
        with pytest.raises(PipelineBuildError, match="Invalid JSON in pipeline"):
            parse_raw_pipeline("not an array")

    def test_pipeline_errors_are_build_errors(self):
        with pytest.raises(QueryBuildError):
            parse_raw_pipeline("[")


@pytest.mark.unit
class TestStageList:
    """Test StageList editing."""

    def test_add_uses_template(self):
        stages = StageList()
        stage = stages.add("$sort")
        assert stage.body == STAGE_TEMPLATES["$sort"]
        assert len(stages) == 1

    def test_changing_verb_resets_body(self):
        stages = StageList()
        stage = stages.add("$match", '{"a": 1}')
        stages.update(stage.id, stage_type="$limit")
        assert stage.stage_type == "$limit"
        assert stage.body == STAGE_TEMPLATES["$limit"]

    def test_same_verb_keeps_body(self):
        stages = StageList()
        stage = stages.add("$match", '{"a": 1}')
        stages.update(stage.id, stage_type="$match")
        assert stage.body == '{"a": 1}'

    def test_move(self):
        stages = StageList()
        first = stages.add("$match")
        second = stages.add("$limit")
        stages.move(second.id, "up")
        assert [s.id for s in stages] == [second.id, first.id]

    def test_move_past_ends_is_noop(self):
        stages = StageList()
        first = stages.add("$match")
        second = stages.add("$limit")
        stages.move(first.id, "up")
        stages.move(second.id, "down")
        assert [s.id for s in stages] == [first.id, second.id]

    def test_move_bad_direction(self):
        stages = StageList()
        stage = stages.add("$match")
        with pytest.raises(ValueError):
            stages.move(stage.id, "sideways")

    def test_set_enabled_and_remove(self):
        stages = StageList()
        match = stages.add("$match", '{"a": 1}')
        limit = stages.add("$limit", "3")
        stages.set_enabled(match.id, False)
        assert stages.build() == [{"$limit": 3}]

        stages.remove(limit.id)
        assert stages.build() == []

    def test_unknown_stage(self):
        with pytest.raises(KeyError):
            StageList().get("missing")


@pytest.mark.unit
class TestRenderers:
    """Test rendering between the raw and visual pipeline editors."""

    def test_render_empty(self):
        assert render_raw_pipeline([]) == EMPTY_RAW_PIPELINE

    def test_render_skips_disabled(self):
        stages = [PipelineStage("$match", '{"a": 1}'), PipelineStage("$limit", "1", enabled=False)]
        assert json.loads(render_raw_pipeline(stages)) == [{"$match": {"a": 1}}]

    def test_render_keeps_unparsable_body_as_text(self):
        stages = [PipelineStage("$match", "{a: 1")]
        assert json.loads(render_raw_pipeline(stages)) == [{"$match": "{a: 1"}]

    def test_round_trip_through_raw(self):
        original = [
            PipelineStage("$match", '{"status": "open"}'),
            PipelineStage("$group", '{"_id": "$owner", "n": {"$sum": 1}}'),
            PipelineStage("$limit", "10"),
        ]
        restored = StageList.from_raw(render_raw_pipeline(original))
        assert restored.build() == build_pipeline(original)
        assert all(stage.enabled for stage in restored)

    def test_pipeline_to_stages_rejects_multi_key_stage(self):
        with pytest.raises(PipelineBuildError) as exc_info:
            pipeline_to_stages([{"$match": {}, "$limit": 1}])
        assert exc_info.value.stage_index == 0
