from pydantic import BaseModel, Field
from typing import Any, Optional

class SetBiasIn(BaseModel): password: Any = ""; asset: Any = ""; bias: Any = ""
class SetBiasOut(BaseModel): success: bool = True; asset: str; bias: str
class ChatIn(BaseModel): asset: str = ""; question: str = ""

class ChatReply(BaseModel):
    advice: Optional[str] = None; risk: Optional[str] = None; disclaimer: Optional[str] = None
    raw: bool = False

class ChatOut(BaseModel):
    asset: str; bias: str
    lastSignal: str; ratio: Optional[float] = None; slowMA: Optional[float] = None
    price: Optional[float] = None; shortTermRealizedPrice: Optional[float] = None
    confidenceScore: int; topProbability: int
    reply: ChatReply

class ErrorOut(BaseModel):
    error: str; allowed: list[str] = Field(default_factory=list)
