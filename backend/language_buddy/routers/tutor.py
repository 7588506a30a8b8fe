"""One-shot tutoring endpoints that bypass the conversation state machine.

They expose the three collaborators directly: a single tutoring reply for a
piece of text, a transcription of an uploaded file, and speech for a text.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from ..deps import Runtime, get_runtime, http_error
from ..errors import BuddyError
from ..language import classify
from ..playback import MAX_SPEECH_CHARS
from ..schemas import Language
from ..settings import settings

router = APIRouter(tags=["tutor"])


class ChatRequest(BaseModel):
	text: str = ""
	language: Optional[Language] = None


class SpeechRequest(BaseModel):
	text: str = ""
	language: Language = Language.english


async def _bounded(coro):
	try:
		return await asyncio.wait_for(coro, timeout=settings.collaborator_timeout_seconds)
	except asyncio.TimeoutError:
		raise HTTPException(status_code=504, detail="upstream service timed out")
	except BuddyError as e:
		raise http_error(e)


@router.post("/chat")
async def chat(req: ChatRequest, rt: Runtime = Depends(get_runtime)):
	text = req.text.strip()
	if not text:
		raise HTTPException(status_code=400, detail="No text provided")
	language = req.language or classify(text)
	message = await _bounded(rt.reply_generator.generate_reply(text, language, rt.session.profile, []))
	return {"message": message, "detectedLanguage": language.value, "success": True}


@router.post("/transcribe")
async def transcribe(audio: UploadFile = File(...), rt: Runtime = Depends(get_runtime)):
	data = await audio.read()
	if not data:
		raise HTTPException(status_code=400, detail="No audio file provided")
	mime_type = audio.content_type or "audio/webm"
	text = await _bounded(rt.transcriber.transcribe(data, mime_type))
	return {"text": text, "success": True}


@router.post("/text-to-speech")
async def text_to_speech(req: SpeechRequest, rt: Runtime = Depends(get_runtime)):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="No text provided")
	audio = await _bounded(rt.synthesizer.synthesize(req.text[:MAX_SPEECH_CHARS], rt.playback.voice_for(req.language)))
	return Response(content=audio.data, media_type=audio.mime_type)
