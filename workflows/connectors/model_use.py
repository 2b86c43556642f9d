"""
Model Use Connector

Send message lists to a model-inference provider.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from .base import Connector, ConnectorResult

MODEL_TYPES = ("text", "vision", "code")


class ModelMessage(BaseModel):
    """A single message sent to the model."""

    role: Literal["system", "user", "assistant"] = "user"
    type: Literal["text", "image", "code"] = "text"
    content: str


class ModelRequest(BaseModel):
    """Request handed to the model provider."""

    model_type: str = "text"
    messages: List[ModelMessage]
    options: Dict[str, Any] = {}


ModelProvider = Callable[[ModelRequest], Awaitable[Any]]


class ModelUseConnector(Connector):
    """
    Model inference connector.

    Parameters accept either ``messages`` (a list of role/type/content
    objects) or a bare ``prompt``. ``modelType`` selects the model family;
    when absent the operation name is used if it names one, else "text".
    Remaining parameters are passed to the provider as options.
    """

    name = "model_use"

    def __init__(self, provider: ModelProvider, name: Optional[str] = None):
        """
        Initialize the connector.

        Args:
            provider: Async callable receiving a ModelRequest and returning
                generated content (or a ConnectorResult)
            name: Connector name (default: "model_use")
        """
        self.logger = logging.getLogger(__name__)
        self.provider = provider
        if name:
            self.name = name

    def build_request(self, operation: str, parameters: Dict[str, Any]) -> ModelRequest:
        """
        Build and validate a provider request.

        Raises:
            ValueError: If the model type or messages are invalid
        """
        options = dict(parameters)
        messages = options.pop("messages", None)
        prompt = options.pop("prompt", None)
        model_type = options.pop("modelType", None) or options.pop("model_type", None)
        if not model_type:
            model_type = operation if operation in MODEL_TYPES else "text"

        model_type = str(model_type).lower()
        if model_type not in MODEL_TYPES:
            raise ValueError(f"Unsupported model type: {model_type}")

        if messages is None and prompt is not None:
            messages = [{"role": "user", "type": "text", "content": str(prompt)}]
        if not messages:
            raise ValueError("Messages are required")
        if not isinstance(messages, list):
            raise ValueError("Messages must be a list")

        try:
            return ModelRequest(model_type=model_type, messages=messages, options=options)
        except ValidationError as e:
            raise ValueError(f"Invalid messages: {e.errors()[0]['msg']}")

    async def invoke(self, operation: str, parameters: Dict[str, Any]) -> ConnectorResult:
        try:
            request = self.build_request(operation, parameters)
        except ValueError as e:
            return ConnectorResult.fail(str(e))

        self.logger.debug(
            f"Sending {len(request.messages)} message(s) to {request.model_type} model"
        )
        result = self.provider(request)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, ConnectorResult):
            return result
        return ConnectorResult.ok(result)
