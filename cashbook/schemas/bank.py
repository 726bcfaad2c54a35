"""
Pydantic schemas for Bank and Branch endpoints.

Renames report how many account numbers were rewritten by the cascade;
deletes report how many rows went with them.
"""

from typing import Literal

from pydantic import BaseModel, Field

from cashbook.models.bank import MAX_BANK_NAME_LENGTH, MAX_BRANCH_ADDRESS_LENGTH


class BankRenameRequest(BaseModel):
    """Request body for PUT /banks/{bank_code}."""
    name: str = Field(max_length=MAX_BANK_NAME_LENGTH)


class BankResponse(BaseModel):
    code: int
    name: str

    model_config = {"from_attributes": True}


class BankEnvelope(BaseModel):
    status: Literal["success"] = "success"
    bank: BankResponse
    accounts_updated: int


class BankListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    banks: list[BankResponse]


class BranchUpdateRequest(BaseModel):
    """Request body for PUT /branches/{branch_code}.

    bank_code may differ from the branch's current bank, which moves the
    branch and rewrites its accounts with the new bank name.
    """
    address: str = Field(max_length=MAX_BRANCH_ADDRESS_LENGTH)
    bank_code: int
    contact_person: str | None = Field(default=None, max_length=100)
    phone_no: str | None = Field(default=None, max_length=30)
    fax_no: str | None = Field(default=None, max_length=30)


class BranchResponse(BaseModel):
    code: int
    address: str
    bank_code: int
    bank_name: str
    contact_person: str | None
    phone_no: str | None
    fax_no: str | None


class BranchEnvelope(BaseModel):
    status: Literal["success"] = "success"
    branch: BranchResponse
    accounts_updated: int


class BranchListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    branches: list[BranchResponse]


class DeleteEnvelope(BaseModel):
    status: Literal["success"] = "success"
    message: str
    accounts_deleted: int
    branches_deleted: int
    banks_deleted: int = 0
