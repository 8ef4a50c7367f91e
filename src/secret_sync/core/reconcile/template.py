"""Template overlay for generated secrets.

A template is a partial secret document (JSON) merged over the secret built
from fetched data. Scalars in the overlay replace the computed value; maps
(labels, annotations, data) are merged key by key with the overlay winning.
"""

import base64
import binascii
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from secret_sync.domain.exceptions import TemplateInvalidError
from secret_sync.domain.models import GeneratedSecret


class TemplateMetadata(BaseModel):
    """Metadata fields a template may set."""

    model_config = ConfigDict(extra="ignore")

    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class SecretTemplate(BaseModel):
    """Parsed template overlay.

    ``data`` values are base64 as in a native secret manifest; ``stringData``
    values are plain text. Name and namespace are not part of the overlay, so
    a template cannot retarget the generated secret.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    type: str | None = None
    data: dict[str, bytes] = Field(default_factory=dict)
    string_data: dict[str, str] = Field(default_factory=dict, alias="stringData")

    @field_validator("data", mode="before")
    @classmethod
    def decode_data(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        decoded = {}
        for key, value in v.items():
            if not isinstance(value, str):
                raise ValueError(f"data[{key!r}] must be a base64 string")
            try:
                decoded[key] = base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"data[{key!r}] is not valid base64: {e}")
        return decoded


def parse_template(raw: dict[str, Any] | str | bytes) -> SecretTemplate:
    """Parse raw template JSON.

    Raises:
        TemplateInvalidError: the template is not JSON or not secret-shaped.
    """
    document: Any = raw
    if isinstance(raw, (str, bytes)):
        try:
            document = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise TemplateInvalidError(f"error unmarshalling json: {e}")

    if not isinstance(document, dict):
        raise TemplateInvalidError("error unmarshalling json: template is not an object")

    try:
        return SecretTemplate.model_validate(document)
    except ValidationError as e:
        raise TemplateInvalidError(f"error unmarshalling json: {e}")


def apply_template(
    secret: GeneratedSecret, raw: dict[str, Any] | str | bytes
) -> GeneratedSecret:
    """Return ``secret`` with the template overlay merged in."""
    template = parse_template(raw)

    data = dict(secret.data)
    data.update(template.data)
    data.update(
        {key: value.encode("utf-8") for key, value in template.string_data.items()}
    )

    return secret.model_copy(
        update={
            "type": template.type or secret.type,
            "labels": {**secret.labels, **template.metadata.labels},
            "annotations": {**secret.annotations, **template.metadata.annotations},
            "data": data,
        }
    )
