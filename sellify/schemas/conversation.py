from typing import List, Optional

from pydantic import BaseModel


class TransitionRequest(BaseModel):
    current_state: str
    event: str


class TransitionResponse(BaseModel):
    new_state: str
    is_terminal: bool


class ObjectionSchema(BaseModel):
    trigger: str
    answer: str


class MediaSchema(BaseModel):
    id: str
    media_type: str
    url: str


class ProductSchema(BaseModel):
    id: str
    name: str
    short_description: str = ""
    long_description: str = ""
    price: float = 0.0
    keywords: List[str] = []
    objections: List[ObjectionSchema] = []
    media: List[MediaSchema] = []


class OverrideRequest(BaseModel):
    state: Optional[str] = None
