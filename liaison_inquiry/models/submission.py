"""Submission result model"""
from pydantic import BaseModel
from typing import Any


class SubmissionResult(BaseModel):
    """Uniform result of a form submission, whatever happened upstream"""
    status: int = 0
    response: str = ""
    data: Any = ""

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def failure(cls, response: str, data: Any = "") -> "SubmissionResult":
        return cls(status=0, response=response, data=data)
