"""
Query and aggregation builders.

Turn the visual editors' structured state into the filter documents and
stage lists the driver executes, and render those back for either editor.
"""

from .builder import (
    Condition,
    ConditionGroup,
    Logic,
    Operator,
    QueryBuilderState,
    build_query,
    parse_filter_text,
    query_to_groups,
    render_raw_query,
)
from .pipeline import (
    PipelineStage,
    StageList,
    build_pipeline,
    parse_raw_pipeline,
    pipeline_to_stages,
    render_raw_pipeline,
    stage_catalog,
    stage_template,
)
from .values import ParsedValue, ValueKind, classify_value, parse_scalar, parse_value

__all__ = [
    # Values
    "ValueKind",
    "ParsedValue",
    "classify_value",
    "parse_value",
    "parse_scalar",
    # Filters
    "Operator",
    "Logic",
    "Condition",
    "ConditionGroup",
    "QueryBuilderState",
    "build_query",
    "parse_filter_text",
    "render_raw_query",
    "query_to_groups",
    # Pipelines
    "PipelineStage",
    "StageList",
    "build_pipeline",
    "parse_raw_pipeline",
    "render_raw_pipeline",
    "pipeline_to_stages",
    "stage_catalog",
    "stage_template",
]
