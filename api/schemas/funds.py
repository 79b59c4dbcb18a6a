from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class WithdrawalSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Any] = None
    bank_name: Optional[str] = Field(default=None, alias="bankName")
    account_number: Optional[str] = Field(default=None, alias="accountNumber")
    account_name: Optional[str] = Field(default=None, alias="accountName")

class CancelWithdrawalSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: Optional[Any] = Field(default=None, alias="requestId")

class DepositSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Any] = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    usdt_amount: Optional[Any] = Field(default=None, alias="usdtAmount")
