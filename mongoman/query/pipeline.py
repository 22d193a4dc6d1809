"""
Aggregation pipeline builder.

A pipeline is authored either visually, as an ordered list of stages each
holding a verb and a JSON body, or as one raw JSON array. Both end up as the
same compiled list of stage documents, which is what gets executed and what
both editors are rendered from.
"""

import dataclasses
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from ..constants import (
    DEFAULT_STAGE_BODY,
    EMPTY_RAW_PIPELINE,
    STAGE_DESCRIPTIONS,
    STAGE_TEMPLATES,
    STAGE_TYPES,
)
from ..exceptions import PipelineBuildError

logger = logging.getLogger(__name__)


def stage_template(stage_type: str) -> str:
    """Starter body for a verb; unknown verbs start from an empty object."""
    return STAGE_TEMPLATES.get(stage_type, DEFAULT_STAGE_BODY)


def stage_catalog() -> list[dict[str, str]]:
    """Verbs offered by the visual editor, in menu order, with description and starter body."""
    return [
        {
            "type": stage_type,
            "description": STAGE_DESCRIPTIONS.get(stage_type, ""),
            "template": stage_template(stage_type),
        }
        for stage_type in STAGE_TYPES
    ]


def _stage_id() -> str:
    return f"stage-{uuid.uuid4()}"


@dataclass
class PipelineStage:
    """One stage of the visual editor. ``body`` is raw JSON text."""

    stage_type: str
    body: str | None = None
    enabled: bool = True
    id: str = dataclasses.field(default_factory=_stage_id)

    def __post_init__(self) -> None:
        if self.body is None:
            self.body = stage_template(self.stage_type)


def build_pipeline(stages: list[PipelineStage]) -> list[dict[str, Any]]:
    """
    Compile enabled stages, in order, into stage documents.

    Any verb is accepted; it simply becomes the key of the stage document.

    Raises:
        PipelineBuildError: If a stage body is not valid JSON. The error
            names the stage's position among enabled stages and its verb.
    """
    pipeline = []
    for index, stage in enumerate(s for s in stages if s.enabled):
        try:
            body = json.loads(stage.body)
        except ValueError as e:
            logger.debug(f"Stage {index} ({stage.stage_type}) has an invalid body: {e}")
            raise PipelineBuildError(
                f"Invalid stage value in stage {index + 1} ({stage.stage_type}): {e}",
                stage_index=index,
                stage_type=stage.stage_type,
            ) from e
        pipeline.append({stage.stage_type: body})
    return pipeline


def parse_raw_pipeline(text: str) -> list[Any]:
    """
    Parse a pipeline authored as one JSON array.

    Raises:
        PipelineBuildError: "Invalid JSON in pipeline" if the text does not
            parse, "Pipeline must be a JSON array" if it parses to anything
            other than an array
    """
    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise PipelineBuildError(f"Invalid JSON in pipeline: {e}") from e
    if not isinstance(parsed, list):
        raise PipelineBuildError("Pipeline must be a JSON array")
    return parsed


def render_raw_pipeline(stages: list[PipelineStage]) -> str:
    """
    Render enabled visual stages as pretty raw pipeline text.

    A stage whose body does not parse is carried over with its text as a
    string value so that no edit is lost on the way to the raw editor.
    """
    pipeline = []
    for stage in stages:
        if not stage.enabled:
            continue
        try:
            body: Any = json.loads(stage.body)
        except ValueError:
            body = stage.body
        pipeline.append({stage.stage_type: body})
    if not pipeline:
        return EMPTY_RAW_PIPELINE
    return json.dumps(pipeline, indent=2)


def pipeline_to_stages(pipeline: list[Any]) -> list[PipelineStage]:
    """
    Render a compiled pipeline as visual stages.

    Raises:
        PipelineBuildError: If an element is not a single-key stage document
    """
    stages = []
    for index, stage_doc in enumerate(pipeline):
        if not isinstance(stage_doc, dict) or len(stage_doc) != 1:
            raise PipelineBuildError(
                f"Stage {index + 1} must be an object with exactly one stage operator",
                stage_index=index,
            )
        (stage_type, body), = stage_doc.items()
        stages.append(PipelineStage(stage_type=stage_type, body=json.dumps(body, indent=2)))
    return stages


class StageList:
    """
    Editable, ordered list of visual stages.
    """

    def __init__(self, stages: list[PipelineStage] | None = None) -> None:
        self.stages: list[PipelineStage] = list(stages or [])

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self):
        return iter(self.stages)

    def _index(self, stage_id: str) -> int:
        for index, stage in enumerate(self.stages):
            if stage.id == stage_id:
                return index
        raise KeyError(stage_id)

    def get(self, stage_id: str) -> PipelineStage:
        return self.stages[self._index(stage_id)]

    def add(self, stage_type: str, body: str | None = None) -> PipelineStage:
        stage = PipelineStage(stage_type=stage_type, body=body)
        self.stages.append(stage)
        return stage

    def remove(self, stage_id: str) -> None:
        self.stages = [s for s in self.stages if s.id != stage_id]

    def update(
        self,
        stage_id: str,
        stage_type: str | None = None,
        body: str | None = None,
        enabled: bool | None = None,
    ) -> PipelineStage:
        """
        Update a stage in place.

        Changing the verb resets the body to that verb's template unless a
        body is given in the same call.
        """
        stage = self.get(stage_id)
        if stage_type is not None and stage_type != stage.stage_type:
            stage.stage_type = stage_type
            stage.body = stage_template(stage_type)
        if body is not None:
            stage.body = body
        if enabled is not None:
            stage.enabled = enabled
        return stage

    def set_enabled(self, stage_id: str, enabled: bool) -> PipelineStage:
        return self.update(stage_id, enabled=enabled)

    def move(self, stage_id: str, direction: str) -> None:
        """
        Swap a stage with its neighbour. Moving past either end is a no-op.

        Args:
            direction: "up" or "down"
        """
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        index = self._index(stage_id)
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(self.stages):
            return
        self.stages[index], self.stages[target] = self.stages[target], self.stages[index]

    def build(self) -> list[dict[str, Any]]:
        return build_pipeline(self.stages)

    def to_raw(self) -> str:
        return render_raw_pipeline(self.stages)

    @classmethod
    def from_raw(cls, text: str) -> "StageList":
        return cls(pipeline_to_stages(parse_raw_pipeline(text)))
