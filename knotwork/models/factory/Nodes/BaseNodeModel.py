from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ModelFlowType = Literal[
    'httpRequest',
    'response',
    'condition',
    'debug',
    'input',
    'output',
    'start',
    'loop',
    'capture',
    'mapper',
    'counter',
    'scraper',
    'filter',
    'arrayMap',
    'carousel',
    'assert',
    'comment',
    'group',
    'serverTrigger',
    'serverResponse',
    'display',
    'tabulize',
    'caseSuccess',
    'caseFail',
]


class ModelFlowTypesModel:
    HTTP_REQUEST = 'httpRequest'
    RESPONSE = 'response'
    CONDITION = 'condition'
    DEBUG = 'debug'
    INPUT = 'input'
    OUTPUT = 'output'
    START = 'start'
    LOOP = 'loop'
    CAPTURE = 'capture'
    MAPPER = 'mapper'
    COUNTER = 'counter'
    SCRAPER = 'scraper'
    FILTER = 'filter'
    ARRAY_MAP = 'arrayMap'
    CAROUSEL = 'carousel'
    ASSERT = 'assert'
    COMMENT = 'comment'
    GROUP = 'group'
    SERVER_TRIGGER = 'serverTrigger'
    SERVER_RESPONSE = 'serverResponse'
    DISPLAY = 'display'
    TABULIZE = 'tabulize'
    CASE_SUCCESS = 'caseSuccess'
    CASE_FAIL = 'caseFail'


class BaseNodeModel(BaseModel):
    """
    Base payload model for all node types.
    Configured to accept extra fields from JSON without raising errors.
    The JSON definition is the source of truth.
    """
    model_config = ConfigDict(extra='allow')

    label: Optional[str] = None
    executionResult: Optional[dict[str, Any]] = Field(default=None)
