"""
Issue Payload Model
===================
Pydantic model for the rendered issue, shaped for an issue host's
issue-creation call (GitHub's POST /repos/{owner}/{repo}/issues takes the
same four fields).
"""
from pydantic import BaseModel


class IssuePayload(BaseModel):
    title: str
    body: str
    labels: list[str] = []
    assignees: list[str] = []
