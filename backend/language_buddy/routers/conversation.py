from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from ..deps import Runtime, get_runtime, http_error
from ..errors import BuddyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversation", tags=["conversation"])


class StartRecordingRequest(BaseModel):
	mime_type: Optional[str] = None


def _view(rt: Runtime) -> Dict[str, Any]:
	view = rt.session.snapshot()
	view["playback"] = {"state": rt.playback.state.value, "key": rt.playback.key, "error": rt.playback.error}
	return view


@router.get("")
async def get_conversation(rt: Runtime = Depends(get_runtime)):
	return _view(rt)


@router.post("/recording/start")
async def start_recording(req: Optional[StartRecordingRequest] = None, rt: Runtime = Depends(get_runtime)):
	try:
		await rt.session.start_recording(req.mime_type if req else None)
	except BuddyError as e:
		raise http_error(e)
	return {"state": rt.session.state.value}


@router.post("/recording/chunk")
async def push_chunk(audio: UploadFile = File(...), rt: Runtime = Depends(get_runtime)):
	if not rt.session.is_recording:
		raise HTTPException(status_code=409, detail="not recording")
	data = await audio.read()
	accepted = rt.session.push_audio(data)
	return {"accepted": accepted, "bytes": len(data)}


@router.post("/recording/stop")
async def stop_recording(wait: bool = False, rt: Runtime = Depends(get_runtime)):
	try:
		await rt.session.stop_recording()
	except BuddyError as e:
		raise http_error(e)
	if wait:
		await rt.session.wait_idle()
	return _view(rt)


@router.post("/clear")
async def clear_conversation(rt: Runtime = Depends(get_runtime)):
	try:
		await rt.clear_conversation()
	except BuddyError as e:
		raise http_error(e)
	return _view(rt)


@router.post("/messages/{index}/speech")
async def speak_message(index: int, rt: Runtime = Depends(get_runtime)):
	try:
		message = rt.session.message_at(index)
	except BuddyError as e:
		raise http_error(e)
	state = await rt.playback.play(message.content, rt.session.speech_language(message), key=index)
	return {"state": state.value, "key": rt.playback.key, "error": rt.playback.error}


@router.post("/playback/finished")
async def playback_finished(key: Optional[int] = None, rt: Runtime = Depends(get_runtime)):
	rt.playback.finished(key)
	return {"state": rt.playback.state.value}


# ---------------- WebSocket: events out, audio + commands in ----------------

async def _forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
	while True:
		event = await queue.get()
		try:
			await websocket.send_json(event)
		except (WebSocketDisconnect, RuntimeError):
			break


async def _handle_command(websocket: WebSocket, rt: Runtime, data: Dict[str, Any]) -> None:
	kind = data.get("type")
	try:
		if kind == "ping":
			await websocket.send_json({"type": "pong"})
		elif kind == "start":
			await rt.session.start_recording(data.get("mime"))
		elif kind == "stop":
			await rt.session.stop_recording()
		elif kind == "mic":
			rt.microphone.report(str(data.get("status")))
		elif kind == "speak":
			message = rt.session.message_at(int(data.get("index", -1)))
			await rt.playback.play(message.content, rt.session.speech_language(message), key=int(data["index"]))
		elif kind == "ended":
			rt.playback.finished(data.get("key"))
		elif kind == "clear":
			await rt.clear_conversation()
		else:
			await websocket.send_json({"type": "rejected", "command": kind, "code": "unknown_command", "detail": f"unknown command {kind!r}"})
	except BuddyError as e:
		await websocket.send_json({"type": "rejected", "command": kind, "code": e.code, "detail": e.detail})
	except ValueError as e:
		await websocket.send_json({"type": "rejected", "command": kind, "code": "invalid_input", "detail": str(e)})


@router.websocket("/ws")
async def conversation_socket(websocket: WebSocket, rt: Runtime = Depends(get_runtime)):
	await websocket.accept()
	queue = rt.bus.subscribe()
	sender = asyncio.create_task(_forward_events(websocket, queue))
	try:
		await websocket.send_json({"type": "snapshot", **_view(rt)})
		while True:
			message = await websocket.receive()
			if message["type"] == "websocket.disconnect":
				break
			# Fast path: raw binary audio chunk from MediaRecorder
			if message.get("bytes"):
				rt.session.push_audio(message["bytes"])
				continue
			text = message.get("text")
			if not text:
				continue
			try:
				data = json.loads(text)
			except ValueError:
				continue
			if isinstance(data, dict):
				await _handle_command(websocket, rt, data)
	except WebSocketDisconnect:
		pass
	finally:
		sender.cancel()
		rt.bus.unsubscribe(queue)
		if rt.session.is_recording:
			# The recorder went away with the socket; process what was captured
			logger.info("Client disconnected mid-recording, stopping capture")
			try:
				await rt.session.stop_recording()
			except BuddyError as e:
				logger.warning("Could not stop the abandoned recording: %s", e.detail)
