from __future__ import annotations

from .schemas import Language, Profile


TRANSCRIBE_INSTRUCTION = """
Transcribe the speech in this audio recording verbatim.
The speaker is a language learner and may use English, Japanese, or a mix of both.
Write Japanese in Japanese script and English in Latin script.
Return ONLY the transcript text, no quotes, labels or commentary.
If nobody speaks, return an empty response.
""".strip()


def _language_guidance(language: Language, level: str) -> str:
	if language == Language.japanese:
		return f"""Since they are speaking in Japanese:
- Respond primarily in Japanese appropriate for their {level} level
- Gently correct any mistakes they make
- Include English translations in parentheses for key phrases
- For beginners, use simpler Japanese and more English
- For intermediate learners, use moderate Japanese with some English explanations
- For advanced learners, use more complex Japanese with minimal English"""
	return f"""Since they are speaking in English:
- Respond primarily in English, but incorporate Japanese phrases appropriate for their {level} level
- Include romaji (Japanese written in Latin letters) and translations for any Japanese you use
- For beginners, teach very basic phrases and vocabulary
- For intermediate learners, introduce more complex grammar and vocabulary
- For advanced learners, use more sophisticated Japanese expressions"""


def build_tutor_prompt(profile: Profile, language: Language) -> str:
	"""Build the system instruction for a tutoring reply.

	The learner's level, native language and interests shape how much Japanese
	the reply uses; the detected language of the latest turn decides which
	language leads.
	"""
	level = profile.level.value
	interests = ", ".join(profile.interests)
	lines = [
		"You are a helpful Japanese language learning assistant.",
		f"The user's native language is {profile.native_language}.",
		f"Their Japanese level is {level}.",
	]
	if interests:
		lines.append(f"Their interests include: {interests}.")
	lines.append("")
	lines.append(f"The user is currently speaking in {language.value}.")
	lines.append("")
	lines.append(_language_guidance(language, level))
	lines.append("")
	if interests:
		lines.append(f"Try to relate your response to one of their interests ({interests}) if possible.")
	else:
		lines.append("Focus on practical, everyday Japanese that would be useful in conversation.")
	lines.append("")
	lines.append("If they've made mistakes in Japanese, gently correct them, showing both their version and the correct version.")
	lines.append("")
	lines.append("Keep your response friendly, encouraging, and focused on helping them improve their Japanese.")
	lines.append("")
	lines.append("Remember to maintain continuity with the previous conversation context if available.")
	return "\n".join(lines)
