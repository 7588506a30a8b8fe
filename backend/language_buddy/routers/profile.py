from fastapi import APIRouter, Depends

from ..deps import Runtime, get_runtime, http_error
from ..errors import BuddyError
from ..schemas import Profile

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile(rt: Runtime = Depends(get_runtime)):
	return rt.session.profile.to_json()


@router.put("")
async def update_profile(profile: Profile, rt: Runtime = Depends(get_runtime)):
	# Goes through the session so the change is announced in the conversation
	try:
		updated = rt.session.update_profile(profile)
	except BuddyError as e:
		raise http_error(e)
	return updated.to_json()
