"""
Endpoint Router Builder

Flattens overlay endpoints into a hostname -> location name table.
"""

from overlay_gateway.common.config import EndpointEntry
from overlay_gateway.common.exceptions import ValidationError

ENDPOINT_FIELDS = (("hostname", "hostname"), ("location_name", "locationName"))


def translate_endpoints(endpoints: list[EndpointEntry]) -> dict[str, str]:
    """
    Build the REST endpoint routing table.

    The last entry wins for a duplicated hostname.

    Raises:
        ValidationError: If an entry lacks hostname or locationName, or
            either is not a string
    """
    rest_endpoints: dict[str, str] = {}
    for index, endpoint in enumerate(endpoints):
        for attr, field_name in ENDPOINT_FIELDS:
            value = getattr(endpoint, attr)
            if not value:
                raise ValidationError(
                    f"endpoints[{index}]: missing required field {field_name}",
                    field=field_name,
                    section="endpoints",
                )
            if not isinstance(value, str):
                raise ValidationError(
                    f"endpoints[{index}]: {field_name} must be a string",
                    field=field_name,
                    section="endpoints",
                )
        rest_endpoints[endpoint.hostname] = endpoint.location_name
    return rest_endpoints
