# lambda_layer/python/peering_common/envelope.py
"""
The custom resource request/response envelope used by the CDK Provider framework.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from peering_common.errors import InvalidRequestError


class RequestType(Enum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass
class CustomResourceRequest:
    request_type: RequestType
    properties: Dict[str, Any]
    physical_resource_id: Optional[str] = None
    old_properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_event(cls, event: dict) -> "CustomResourceRequest":
        """
        Parses the lifecycle event handed to an onEvent handler.

        Raises:
            InvalidRequestError: If the request type or properties are missing or unknown.
        """
        if not isinstance(event, dict):
            raise InvalidRequestError("Custom resource event must be a JSON object.")

        raw_type = event.get("RequestType")
        try:
            request_type = RequestType(raw_type)
        except ValueError:
            raise InvalidRequestError(f"Invalid request type: {raw_type}")

        properties = event.get("ResourceProperties")
        if not isinstance(properties, dict):
            raise InvalidRequestError("Missing required field: ResourceProperties")

        return cls(
            request_type=request_type,
            properties=properties,
            physical_resource_id=event.get("PhysicalResourceId") or None,
            old_properties=event.get("OldResourceProperties") or {},
        )

    def require(self, name: str) -> str:
        """Returns a non-empty string property or raises InvalidRequestError."""
        value = self.properties.get(name)
        if value is None or not str(value).strip():
            raise InvalidRequestError(f"Missing required resource property: {name}")
        return str(value).strip()

    def changed_properties(self) -> list[str]:
        """Names of properties whose value differs between the old and new request."""
        if not self.old_properties:
            return []
        names = set(self.properties) | set(self.old_properties)
        names.discard("ServiceToken")
        return sorted(n for n in names if self.properties.get(n) != self.old_properties.get(n))


@dataclass
class CustomResourceResponse:
    physical_resource_id: str
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        response = {"PhysicalResourceId": self.physical_resource_id}
        if self.data is not None:
            response["Data"] = self.data
        return response


def dispatch(event: dict, on_create: Callable, on_update: Callable, on_delete: Callable) -> dict:
    """Routes a lifecycle event to the matching callback and serialises its response."""
    print(f"Event: {json.dumps(event, default=str)}")
    request = CustomResourceRequest.from_event(event)

    if request.request_type is RequestType.CREATE:
        response = on_create(request)
    elif request.request_type is RequestType.UPDATE:
        response = on_update(request)
    else:
        response = on_delete(request)

    result = response.to_dict()
    print(f"Response: {json.dumps(result, default=str)}")
    return result
