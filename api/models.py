"""
API response models for the FastAPI application.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """Uniform envelope returned by every endpoint."""
    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = Field(None, description="Payload")
    count: Optional[int] = Field(None, description="Number of items in a list payload")
    error: Optional[str] = Field(None, description="Error detail")

    def render(self) -> Dict[str, Any]:
        """Envelope dict without the keys that were not set."""
        return self.model_dump(exclude_none=True)
