"""Pydantic schemas for loan status notifications."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class LoanStatusNotification(BaseModel):
    # Required fields are checked by the service so the error message matches the API contract
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    name: Optional[str] = None
    loan_id: Optional[Union[int, str]] = Field(default=None, alias="loanId")
    status: Optional[str] = None
