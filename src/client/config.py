import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class ClientConfig(BaseModel):
    api_url: str = Field(
        default_factory=lambda: os.getenv("INVOICE_API_URL", "http://localhost:8080"))
    timeout: float = Field(
        default_factory=lambda: float(os.getenv("INVOICE_API_TIMEOUT", "10")), gt=0,
        validate_default=True)
