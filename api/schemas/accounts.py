from typing import Any, Optional
from pydantic import BaseModel


class CreateRealAccountSchema(BaseModel):
    password: Optional[str] = None

class SwitchAccountSchema(BaseModel):
    login: Optional[Any] = None

class DemoBalanceSchema(BaseModel):
    balance: Optional[Any] = None
