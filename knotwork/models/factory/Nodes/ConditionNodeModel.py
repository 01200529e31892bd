"""
ConditionNodeModel - Pydantic validation model for condition node payloads.

The node compares its ``input`` operand against ``targetValue`` using the
``condition`` operator and routes through the ``true`` or ``false`` handle.
"""

from typing import Any, Optional

from pydantic import Field

from knotwork.models.factory.Nodes.BaseNodeModel import BaseNodeModel


class ConditionNodeModel(BaseNodeModel):
    """
    Validation model for condition node configuration.

    Example usage in JSON:
        {
            "id": "check-status",
            "type": "condition",
            "data": {
                "condition": "greaterThan",
                "input": 5,
                "targetValue": "3"
            }
        }
    """
    condition: str = Field(
        default='equal',
        description="Comparison operator: equal, notEqual, greaterThan, lessThan, contains"
    )
    input: Optional[Any] = Field(
        default=None,
        description="Left operand, usually filled from the upstream node"
    )
    targetValue: Optional[Any] = Field(
        default=None,
        description="Right operand typed by the user"
    )
    istrue: Optional[bool] = Field(
        default=None,
        description="Explicit outcome; overrides the computed comparison when set"
    )
