"""Pipeline stage implementations.

Each stage is a class deriving from BaseStage.
"""

from tabload.pipeline.stages.base import BaseStage
from tabload.pipeline.stages.infer_schema_stage import InferSchemaStage
from tabload.pipeline.stages.load_data_stage import LoadDataStage
from tabload.pipeline.stages.materialize_table_stage import MaterializeTableStage
from tabload.pipeline.stages.notify_stage import NotifyStage
from tabload.pipeline.stages.validate_stage import ValidateStage

__all__ = [
    "BaseStage",
    "InferSchemaStage",
    "LoadDataStage",
    "MaterializeTableStage",
    "NotifyStage",
    "ValidateStage",
]
