"""Serialization utilities for FedQ model exchange.

Models travel as versioned JSON documents:

    {"version": 1, "timestamp": <ms since epoch>,
     "model": {"<state>": [q0, q1, ...], ...},
     "metadata": {"total_states": ..., "action_space": ..., ...}}

Python floats are written with ``repr`` precision, so a round trip is
lossless for float64 values. Decoding is soft: ``deserialize_model``
returns None instead of raising so one corrupt payload cannot abort a
long training run.
"""

import json
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np

from ..errors import FedQError, ModelParseError, ModelSchemaError
from ..model import Model, QVectorLike, model_width

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
SUPPORTED_VERSIONS = (1,)

Payload = Union[str, bytes, bytearray, Mapping[str, Any]]


@dataclass
class SerializedModel:
    """Decoded model document.

    Attributes:
        version: Schema version of the payload.
        model: State key to Q-vector mapping.
        timestamp: Milliseconds since the epoch at serialization time.
        metadata: Free-form metadata (totals, client ids, rounds...).
    """
    version: int
    model: Model
    timestamp: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def serialize_model(
    model: Mapping[str, QVectorLike],
    metadata: Optional[Mapping[str, Any]] = None,
    timestamp: Optional[int] = None,
) -> str:
    """Serialize a model to a versioned JSON payload.

    Args:
        model: Model to encode. Not modified.
        metadata: Extra metadata merged over the defaults
            (``total_states`` and ``action_space``).
        timestamp: Override for the timestamp (ms); defaults to now.

    Returns:
        JSON string.

    Example:
        >>> payload = serialize_model({"s0": [1.0, 2.0]}, timestamp=0)
        >>> deserialize_model(payload).model["s0"].tolist()
        [1.0, 2.0]
    """
    meta: Dict[str, Any] = {
        "total_states": len(model),
        "action_space": model_width(model),
    }
    if metadata:
        meta.update(metadata)

    document = {
        "version": SCHEMA_VERSION,
        "timestamp": _now_ms() if timestamp is None else int(timestamp),
        "model": {
            str(state): [float(q) for q in np.asarray(values).ravel()]
            for state, values in model.items()
        },
        "metadata": meta,
    }
    return json.dumps(document)


def _decode_model(raw: Any) -> Model:
    if not isinstance(raw, dict):
        raise ModelSchemaError(
            "'model' must be an object", found=type(raw).__name__,
        )
    model: Model = {}
    for state, values in raw.items():
        if not isinstance(values, list) or not all(_is_number(v) for v in values):
            raise ModelSchemaError(
                "Q-vector must be a list of numbers", state=state,
            )
        try:
            vec = np.asarray(values, dtype=np.float64)
        except (OverflowError, ValueError) as exc:
            raise ModelSchemaError(
                "Q-vector value out of float range", state=state,
            ) from exc
        if not np.all(np.isfinite(vec)):
            raise ModelSchemaError(
                "Q-vector values must be finite", state=state,
            )
        model[state] = vec
    return model


def parse_model_payload(payload: Payload) -> SerializedModel:
    """Decode a payload, raising on any problem.

    Args:
        payload: JSON text/bytes, or an already-parsed dict.

    Returns:
        SerializedModel.

    Raises:
        ModelParseError: Payload is not valid JSON.
        ModelSchemaError: Missing or malformed fields, or an
            unsupported version.
    """
    if isinstance(payload, Mapping):
        data: Any = dict(payload)
    else:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError, RecursionError) as exc:
            raise ModelParseError("payload is not valid JSON", detail=str(exc)) from exc

    if not isinstance(data, dict):
        raise ModelSchemaError(
            "payload must be a JSON object", found=type(data).__name__,
        )
    for required in ("version", "model"):
        if required not in data or data[required] is None:
            raise ModelSchemaError("missing required field", field=required)

    version = data["version"]
    if not _is_number(version) or version not in SUPPORTED_VERSIONS:
        raise ModelSchemaError(
            "unsupported schema version",
            found=version, supported=list(SUPPORTED_VERSIONS),
        )

    timestamp = data.get("timestamp", 0)
    if not _is_number(timestamp):
        raise ModelSchemaError("timestamp must be a number", found=timestamp)
    try:
        finite = math.isfinite(timestamp)
    except OverflowError:
        finite = False
    if not finite:
        raise ModelSchemaError("timestamp must be finite", found=str(timestamp)[:32])

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ModelSchemaError(
            "metadata must be an object", found=type(metadata).__name__,
        )

    return SerializedModel(
        version=int(version),
        model=_decode_model(data["model"]),
        timestamp=int(timestamp),
        metadata=metadata,
    )


def deserialize_model(payload: Payload) -> Optional[SerializedModel]:
    """Decode a payload, returning None when it is unusable.

    Never raises on malformed input; the reason is logged at WARNING
    so callers can skip the import and keep their current model.
    """
    try:
        return parse_model_payload(payload)
    except FedQError as exc:
        logger.warning("Model deserialization failed (%s): %s %s",
                       exc.kind, exc.message, exc.context)
        return None


def save_model(
    path: Union[str, Path],
    model: Mapping[str, QVectorLike],
    metadata: Optional[Mapping[str, Any]] = None,
) -> bool:
    """Write a model to disk in the wire format.

    Returns:
        True on success, False if the file could not be written.
    """
    payload = serialize_model(model, metadata)
    try:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload)
    except OSError as exc:
        logger.error("Could not save model to %s: %s", path, exc)
        return False
    logger.info("Saved model with %d states to %s", len(model), path)
    return True


def load_model(path: Union[str, Path]) -> Optional[SerializedModel]:
    """Read a model saved by save_model; None if missing or invalid."""
    try:
        payload = Path(path).read_text()
    except OSError as exc:
        logger.warning("Could not read model from %s: %s", path, exc)
        return None
    return deserialize_model(payload)
