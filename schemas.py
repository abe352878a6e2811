"""
API Schemas

Pydantic models for the request bodies that carry required fields and for
the write acknowledgments returned by the API. User and artwork documents
themselves are schema-less and pass through as plain dicts.

Collections:
- arts_users: {email, user_fav_list: [ObjectId], ...}
- arts_collections: {artistEmail, visibility, createdAt, likes, likedBy: [email], ...}
"""

from pydantic import BaseModel, Field
from typing import Optional, List

class FavoriteIn(BaseModel):
    artworkId: str = Field(..., description="Artwork ObjectId as hex string")

class LikeIn(BaseModel):
    userEmail: str = Field(..., min_length=1, description="Email of the user toggling the like")

class LikeState(BaseModel):
    likes: int = 0
    likedBy: List[str] = Field(default_factory=list)

class InsertAck(BaseModel):
    acknowledged: bool
    insertedId: str

class UpdateAck(BaseModel):
    acknowledged: bool
    matchedCount: int = 0
    modifiedCount: int = 0
    upsertedCount: int = 0
    upsertedId: Optional[str] = None

class DeleteAck(BaseModel):
    acknowledged: bool
    deletedCount: int = 0
