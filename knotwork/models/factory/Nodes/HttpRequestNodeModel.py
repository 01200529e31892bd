from typing import Any, ClassVar, Literal, Optional

from pydantic import Field, model_validator

from knotwork.models.factory.Nodes.BaseNodeModel import BaseNodeModel


class HttpRequestNodeModel(BaseNodeModel):
    """
    HTTP request node payload - accepts various field names from JSON.
    The JSON definition is the source of truth.
    """
    # Fields that may carry {{name}} placeholders
    TEMPLATED_FIELDS: ClassVar[tuple[str, ...]] = ('endpoint', 'params', 'body', 'headers')

    method: str = "GET"
    endpoint: Optional[str] = None
    url: Optional[str] = None  # alias for endpoint
    params: Optional[dict[str, Any]] = Field(default_factory=dict)
    body: Optional[Any] = None
    headers: Optional[dict[str, Any]] = Field(default_factory=dict)
    contentType: Literal['json', 'formData', 'multipart'] = 'json'
    lastResponse: Optional[dict[str, Any]] = None

    @model_validator(mode='after')
    def resolve_aliases(self):
        """Resolve fields from alternative names (JSON-first approach)."""
        if self.endpoint is None and self.url is not None:
            self.endpoint = self.url
        self.method = (self.method or 'GET').upper().strip()
        return self

