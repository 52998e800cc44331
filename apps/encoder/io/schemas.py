# schemas.py
from typing import List, Union

from pydantic import BaseModel, ConfigDict, StrictStr


# --- POST /encode request ---
class EncodeRequest(BaseModel):
    encoded_data: List[Union[int, float]]
    audio_scales: List[Union[int, float]]


# --- 200 response ---
class EncodeResponse(BaseModel):
    file_path: StrictStr

    model_config = ConfigDict(extra="ignore")


# --- non-2xx response ---
class ErrorResponse(BaseModel):
    detail: StrictStr

    model_config = ConfigDict(extra="ignore")
