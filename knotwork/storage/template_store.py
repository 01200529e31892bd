import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ValidationError

from knotwork.errors import FlowStoreError

logger = logging.getLogger(__name__)


class RequestTemplate(BaseModel):
    """A saved request that can be dropped onto a flow as an httpRequest node."""
    id: str
    name: str
    method: str = 'GET'
    endpoint: str = ''
    headers: Optional[Any] = None
    body: Optional[Any] = None
    params: Optional[Any] = None

    def node_data(self) -> dict:
        """``data`` of an httpRequest node built from this template."""
        return self.model_dump(exclude={'id'}, exclude_none=True)


class RequestTemplateStore:
    """
    Request templates persisted as a JSON array (``requests.json``).

    Saving a template whose id is already stored replaces it in place.
    """

    def __init__(self, path='requests.json'):
        self.path = Path(path).expanduser()

    def load_templates(self) -> List[RequestTemplate]:
        if not self.path.exists():
            return []
        try:
            document = json.loads(self.path.read_text(encoding='utf-8') or '[]')
            if not isinstance(document, list):
                raise FlowStoreError(str(self.path), "request templates must be a JSON array")
            return [RequestTemplate.model_validate(item) for item in document]
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise FlowStoreError(str(self.path), f"cannot read request templates: {e}") from e

    def save_template(self, template: Union[RequestTemplate, dict]) -> List[RequestTemplate]:
        if isinstance(template, dict):
            template = RequestTemplate.model_validate(template)
        try:
            templates = self.load_templates()
        except FlowStoreError as e:
            logger.warning("Starting a new template list: %s", e)
            templates = []

        for index, existing in enumerate(templates):
            if existing.id == template.id:
                templates[index] = template
                break
        else:
            templates.append(template)

        document = [t.model_dump(exclude_none=True) for t in templates]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding='utf-8')
        except OSError as e:
            raise FlowStoreError(str(self.path), f"cannot write request templates: {e}") from e
        logger.info("Saved request template '%s' (%d stored)", template.name, len(templates))
        return templates
