from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


def camel_field(name: str, camel: str, default=...):
    # Read from ORM attributes or camelCase JSON, always written as camelCase
    return Field(
        default,
        validation_alias=AliasChoices(name, camel),
        serialization_alias=camel,
    )


class PaymentCreate(BaseModel):
    # Missing account/amount fields decode to empty values so the service's
    # ordered validation rules are the ones that report them.
    account_origin: str = Field("", alias="accountOrigin", examples=["ES91-2100-0418-4502-0005-1332"])
    account_target: str = Field("", alias="accountTarget", examples=["ES79-2100-0813-6101-2345-6789"])
    # Strict: booleans and numeric strings are rejected, JSON integers are not
    amount: float = Field(0.0, strict=True, allow_inf_nan=False, examples=[25.0])
    date: datetime


class PaymentRead(BaseModel):
    uid: str
    account_origin: str = camel_field("account_origin", "accountOrigin")
    account_target: str = camel_field("account_target", "accountTarget")
    amount: float
    date: datetime
    processed: bool
    processed_date: Optional[datetime] = camel_field("processed_date", "processedDate", None)

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    code: int
    error: str
