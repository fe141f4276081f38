from pydantic import BaseModel, Field
from typing import Optional

# Fields are optional at the schema level so that a missing field reaches
# the service and is reported as "Missing <field> field" with a 400.

class SummarizeRequest(BaseModel):
    text: Optional[str] = Field(None, description="Text to summarize")

class ExplainRequest(BaseModel):
    text: Optional[str] = Field(None, description="Text to explain")

class ChatRequest(BaseModel):
    question: Optional[str] = Field(None, description="User question")
    context: Optional[str] = Field(None, description="Page text the answer is grounded on")

class SummarizeResponse(BaseModel):
    summary: str

class ExplainResponse(BaseModel):
    explanation: str

class ChatResponse(BaseModel):
    answer: str

class ErrorResponse(BaseModel):
    error: str
