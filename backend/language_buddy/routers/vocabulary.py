from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import Runtime, get_runtime, http_error
from ..errors import BuddyError


router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])


class AddWordRequest(BaseModel):
    japanese: str = ""
    english: str = ""
    romaji: Optional[str] = None


@router.get("")
async def list_words(rt: Runtime = Depends(get_runtime)):
    return {"items": [item.to_json() for item in rt.vocabulary.list()]}


@router.post("", status_code=201)
async def add_word(req: AddWordRequest, rt: Runtime = Depends(get_runtime)):
    try:
        item = rt.vocabulary.add(req.japanese, req.english, req.romaji)
    except BuddyError as e:
        raise http_error(e)
    return item.to_json()


@router.post("/{index}/review")
async def review_word(index: int, rt: Runtime = Depends(get_runtime)):
    try:
        item = rt.vocabulary.review(index)
    except BuddyError as e:
        raise http_error(e)
    return item.to_json()


@router.delete("/{index}")
async def remove_word(index: int, rt: Runtime = Depends(get_runtime)):
    try:
        item = rt.vocabulary.remove(index)
    except BuddyError as e:
        raise http_error(e)
    return {"removed": item.to_json(), "remaining": len(rt.vocabulary.list())}
