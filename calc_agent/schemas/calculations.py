from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Artifact(BaseModel):
    # populated by wire name only, a JSON input carrying content_type is not an artifact
    name: str
    content_type: str = Field(alias="contentType")
    uri: str

    @property
    def extension(self) -> str:
        return self.name[self.name.rfind(".") + 1:]


class CalculationKey(BaseModel):
    """Structured calculation id some coordinators send back inside the context."""
    model_config = ConfigDict(populate_by_name=True)

    document_type: Optional[str] = Field(default=None, alias="documentType")
    type: Optional[str] = None
    id: Optional[str] = None
    version: Optional[str] = None
    path: Optional[str] = None


class ArtifactInput(BaseModel):
    kind: Literal["artifact"] = "artifact"
    artifact: Artifact


class JsonInput(BaseModel):
    kind: Literal["json"] = "json"
    value: Any


InputValue = Annotated[Union[ArtifactInput, JsonInput], Field(discriminator="kind")]


def tag_input(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Decide whether a raw input is an artifact or plain JSON.

    Anything that validates as an Artifact (non-null string name, uri and
    contentType) is an artifact; everything else is JSON. Null stays null.
    """
    if raw is None:
        return None
    try:
        Artifact.model_validate(raw)
    except ValidationError:
        return {"kind": "json", "value": raw}
    return {"kind": "artifact", "artifact": raw}


class CalculationContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Union[CalculationKey, str, int, None] = None
    owner: Optional[str] = None
    inputs: Dict[str, Optional[InputValue]] = Field(default_factory=dict)
    failed_inputs: Dict[str, str] = Field(default_factory=dict, alias="failedInputs")

    @field_validator("inputs", mode="before")
    @classmethod
    def _tag_inputs(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {name: tag_input(raw) for name, raw in value.items()}

    @field_validator("failed_inputs", mode="before")
    @classmethod
    def _null_failed_inputs(cls, value: Any) -> Any:
        return {} if value is None else value


class CalculationPayload(BaseModel):
    id: str
    host: Optional[str] = None
    token: Optional[str] = None


class CalculationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    outputs: Dict[str, Any] = Field(default_factory=dict)
    logs: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
