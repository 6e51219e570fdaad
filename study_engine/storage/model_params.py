"""
Per-project memory-model configuration.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from study_engine.storage.models import ModelParamsRow


@dataclass(frozen=True)
class ModelParams:
    project_id: str
    retention: float
    weights: Optional[tuple[float, ...]] = None


def get_params(session: Session, project_id: str) -> Optional[ModelParams]:
    row = session.get(ModelParamsRow, project_id)
    if row is None:
        return None
    weights = tuple(json.loads(row.weights_json)) if row.weights_json else None
    return ModelParams(project_id=project_id, retention=row.retention, weights=weights)


def put_params(
    session: Session,
    project_id: str,
    retention: float,
    weights: Optional[Sequence[float]],
    now: datetime
) -> ModelParams:
    """Insert or replace a project's retention target and weights."""
    row = session.get(ModelParamsRow, project_id)
    if row is None:
        row = ModelParamsRow(project_id=project_id)
        session.add(row)
    row.retention = retention
    row.weights_json = json.dumps([float(w) for w in weights]) if weights is not None else None
    row.updated_at = now
    session.flush()
    return ModelParams(
        project_id=project_id,
        retention=retention,
        weights=tuple(float(w) for w in weights) if weights is not None else None,
    )
