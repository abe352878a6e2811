import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Depends, Body, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import get_db, DatabaseUnavailable, USERS, ARTWORKS
from schemas import FavoriteIn, LikeIn, LikeState, InsertAck, UpdateAck, DeleteAck

logger = logging.getLogger("ArtFolio.API")

PUBLIC = "Public"
HOMEPAGE_LIMIT = 6
LIKE_ATTEMPTS = 3

app = FastAPI(title="Art Folio API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers

@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    logger.error(f"{request.method} {request.url.path}: database unavailable: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Database not available"})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"{request.method} {request.url.path}: database error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Utilities

def serialize_doc(value: Any) -> Any:
    """Render ObjectIds as hex strings, at any depth, keeping keys as stored."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_doc(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    return value


def parse_object_id(value: str, what: str = "artwork") -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {what} id")
    return ObjectId(value)


def insert_ack(res) -> InsertAck:
    return InsertAck(acknowledged=res.acknowledged, insertedId=str(res.inserted_id))


def update_ack(res) -> UpdateAck:
    upserted = res.upserted_id
    return UpdateAck(
        acknowledged=res.acknowledged,
        matchedCount=res.matched_count,
        modifiedCount=res.modified_count,
        upsertedCount=0 if upserted is None else 1,
        upsertedId=None if upserted is None else str(upserted),
    )


def delete_ack(res) -> DeleteAck:
    return DeleteAck(acknowledged=res.acknowledged, deletedCount=res.deleted_count)


# Routes
@app.get("/", response_class=PlainTextResponse)
def read_root():
    return "App is running"


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        db = get_db()
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        response["database_name"] = db.name
        response["collections"] = db.list_collection_names()
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
    return response


# Users
@app.get("/users/{email}")
def get_user(email: str, db: Database = Depends(get_db)):
    user = db[USERS].find_one({"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize_doc(user)


@app.post("/users", response_model=InsertAck)
def create_user(payload: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    if not payload.get("email"):
        raise HTTPException(status_code=400, detail="email is required")
    # ids are always store-generated
    new_user = {k: v for k, v in payload.items() if k != "_id"}
    res = db[USERS].insert_one(new_user)
    logger.info(f"Created user {payload['email']} ({res.inserted_id})")
    return insert_ack(res)


# Artworks
@app.get("/artwork")
def list_public_artworks(db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    cursor = db[ARTWORKS].find({"visibility": PUBLIC}).sort("createdAt", -1)
    return [serialize_doc(d) for d in cursor]


@app.get("/artwork/limit")
def list_latest_public_artworks(db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    cursor = db[ARTWORKS].find({"visibility": PUBLIC}).sort("createdAt", -1).limit(HOMEPAGE_LIMIT)
    return [serialize_doc(d) for d in cursor]


@app.get("/artwork/user/{email}")
def list_artist_artworks(email: str, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    return [serialize_doc(d) for d in db[ARTWORKS].find({"artistEmail": email})]


@app.get("/artwork/{artwork_id}")
def get_artwork(artwork_id: str, db: Database = Depends(get_db)):
    obj_id = parse_object_id(artwork_id)
    art = db[ARTWORKS].find_one({"_id": obj_id})
    if not art:
        raise HTTPException(status_code=404, detail="Artwork not found")
    return serialize_doc(art)


@app.put("/artwork/{artwork_id}", response_model=UpdateAck)
def update_artwork(artwork_id: str, data: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    obj_id = parse_object_id(artwork_id)
    # ids are immutable
    update_dict = {k: v for k, v in data.items() if k != "_id"}
    if not update_dict:
        # MongoDB rejects an empty $set
        matched = 0 if db[ARTWORKS].find_one({"_id": obj_id}, {"_id": 1}) is None else 1
        return UpdateAck(acknowledged=True, matchedCount=matched)
    res = db[ARTWORKS].update_one({"_id": obj_id}, {"$set": update_dict})
    if res.matched_count == 0:
        logger.debug(f"Update matched no artwork {artwork_id}")
    return update_ack(res)


@app.delete("/artwork/{artwork_id}", response_model=DeleteAck)
def delete_artwork(artwork_id: str, db: Database = Depends(get_db)):
    obj_id = parse_object_id(artwork_id)
    res = db[ARTWORKS].delete_one({"_id": obj_id})
    logger.info(f"Deleted {res.deleted_count} artwork(s) with id {artwork_id}")
    return delete_ack(res)


@app.post("/add-artwork", response_model=InsertAck, status_code=status.HTTP_201_CREATED)
def create_artwork(data: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    new_art = {k: v for k, v in data.items() if k != "_id"}
    new_art["createdAt"] = datetime.now(timezone.utc)
    res = db[ARTWORKS].insert_one(new_art)
    logger.info(f"Created artwork {res.inserted_id}")
    return insert_ack(res)


# Favorites
@app.post("/users/{email}/favorites", response_model=UpdateAck)
def add_favorite(email: str, item: FavoriteIn, db: Database = Depends(get_db)):
    obj_id = parse_object_id(item.artworkId)
    res = db[USERS].update_one({"email": email}, {"$addToSet": {"user_fav_list": obj_id}})
    return update_ack(res)


@app.delete("/users/{email}/favorites/{artwork_id}", response_model=UpdateAck)
def remove_favorite(email: str, artwork_id: str, db: Database = Depends(get_db)):
    obj_id = parse_object_id(artwork_id)
    res = db[USERS].update_one({"email": email}, {"$pull": {"user_fav_list": obj_id}})
    return update_ack(res)


@app.get("/users/{email}/favorites")
def list_favorites(email: str, db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
    user = db[USERS].find_one({"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    # older documents may hold ids as hex strings
    ids = []
    for fav in user.get("user_fav_list") or []:
        if isinstance(fav, ObjectId):
            ids.append(fav)
        elif isinstance(fav, str) and ObjectId.is_valid(fav):
            ids.append(ObjectId(fav))
    # dangling references simply do not match
    return [serialize_doc(d) for d in db[ARTWORKS].find({"_id": {"$in": ids}})]


# Likes
@app.post("/artwork/{artwork_id}/like", response_model=LikeState)
def toggle_like(artwork_id: str, item: LikeIn, db: Database = Depends(get_db)):
    """Like or unlike an artwork for ``item.userEmail``.

    Each branch is a single conditional update. When neither branch matches,
    either the artwork is gone or the state flipped between the two updates;
    the latter is retried.
    """
    obj_id = parse_object_id(artwork_id)
    collection = db[ARTWORKS]
    user = item.userEmail
    art = collection.find_one({"_id": obj_id}, {"likes": 1, "likedBy": 1})
    if not art:
        raise HTTPException(status_code=404, detail="Artwork not found")
    # $inc and $addToSet reject null fields
    if art.get("likes") is None:
        collection.update_one({"_id": obj_id, "likes": None}, {"$set": {"likes": 0}})
    if art.get("likedBy") is None:
        collection.update_one({"_id": obj_id, "likedBy": None}, {"$set": {"likedBy": []}})
    for _ in range(LIKE_ATTEMPTS):
        art = collection.find_one_and_update(
            {"_id": obj_id, "likedBy": {"$ne": user}},
            {"$inc": {"likes": 1}, "$addToSet": {"likedBy": user}},
            return_document=ReturnDocument.AFTER,
        )
        if art is None:
            art = collection.find_one_and_update(
                {"_id": obj_id, "likedBy": user},
                {"$inc": {"likes": -1}, "$pull": {"likedBy": user}},
                return_document=ReturnDocument.AFTER,
            )
        if art is not None:
            return LikeState(likes=art.get("likes", 0), likedBy=art.get("likedBy", []))
        if collection.find_one({"_id": obj_id}, {"_id": 1}) is None:
            raise HTTPException(status_code=404, detail="Artwork not found")
    logger.warning(f"Like toggle on {artwork_id} kept racing, giving up")
    raise HTTPException(status_code=409, detail="Artwork changed concurrently, try again")


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
