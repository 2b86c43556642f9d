"""Connectors: external capability providers addressed by name."""

from .base import Connector, ConnectorResult, ConnectorRegistry
from .data_transform import DataTransformConnector, TRANSFORMS
from .host_automation import HostAutomationConnector
from .model_use import ModelUseConnector, ModelMessage, ModelRequest, MODEL_TYPES

__all__ = [
    "Connector",
    "ConnectorResult",
    "ConnectorRegistry",
    "DataTransformConnector",
    "HostAutomationConnector",
    "ModelUseConnector",
    "ModelMessage",
    "ModelRequest",
    "MODEL_TYPES",
    "TRANSFORMS",
]
