"""
Filled Form Model
Pydantic model for one submission attempt: reporter text keyed by section heading.
"""
from typing import Optional
from pydantic import BaseModel, Field


class FilledForm(BaseModel):
    sections: dict[str, str] = Field(default_factory=dict)
    title: Optional[str] = None
