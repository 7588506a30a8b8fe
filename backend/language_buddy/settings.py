from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Model used for tutoring replies
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: model override for transcription requests
	gemini_transcribe_model: str | None = Field(default=None, validation_alias="GEMINI_TRANSCRIBE_MODEL")
	gemini_tts_model: str = Field(default="gemini-2.5-flash-preview-tts", validation_alias="GEMINI_TTS_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# Speech-to-text backend: "gemini" (multimodal prompt) or "google" (Cloud Speech-to-Text)
	transcriber: str = Field(default="gemini", validation_alias="TRANSCRIBER")

	# Prebuilt voice names, one per language tag
	voice_japanese: str = Field(default="Kore", validation_alias="VOICE_JAPANESE")
	voice_english: str = Field(default="Puck", validation_alias="VOICE_ENGLISH")

	# Upper bound for every transcription / reply / synthesis call
	collaborator_timeout_seconds: float = Field(default=30.0, validation_alias="COLLABORATOR_TIMEOUT_SECONDS")
	# Recordings smaller than this are treated as silence and never sent out
	min_audio_bytes: int = Field(default=128, validation_alias="MIN_AUDIO_BYTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
