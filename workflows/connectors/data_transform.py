"""
Data Transform Connector

Side-effect free transformations of a step's ``data`` parameter.
"""

import json
from typing import Any, Callable, Dict

from ..templates import stringify
from .base import Connector, ConnectorResult


def _json_parse(data: Any) -> Any:
    if data is None:
        return {}
    if not isinstance(data, str):
        return data
    return json.loads(data or "{}")


def _json_stringify(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def _to_upper(data: Any) -> str:
    return stringify(data).upper()


def _to_lower(data: Any) -> str:
    return stringify(data).lower()


TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "json_parse": _json_parse,
    "json_stringify": _json_stringify,
    "to_upper": _to_upper,
    "to_lower": _to_lower,
}


class DataTransformConnector(Connector):
    """
    Pure data transformation connector.

    The transform is taken from ``parameters["transform"]`` or, when absent,
    from the operation name. Unknown transforms return ``data`` unchanged.
    """

    name = "data_transform"

    def __init__(self, name: str = None):
        if name:
            self.name = name

    async def invoke(self, operation: str, parameters: Dict[str, Any]) -> ConnectorResult:
        data = parameters.get("data")
        transform = str(parameters.get("transform") or operation or "").lower()

        func = TRANSFORMS.get(transform)
        if func is None:
            return ConnectorResult.ok(data)

        try:
            return ConnectorResult.ok(func(data))
        except ValueError as e:
            return ConnectorResult.fail(f"Transform '{transform}' failed: {e}")
