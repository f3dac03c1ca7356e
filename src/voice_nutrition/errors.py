"""Error taxonomy for the voice-to-nutrition pipeline."""

_GENERIC_FAILURE = "Failed to process audio"


class PipelineError(RuntimeError):
    """Base class for failures surfaced to the user."""

    default_detail = "Unknown error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)

    @property
    def detail(self) -> str:
        """Return the technical detail passed at construction."""
        return str(self)

    @property
    def user_message(self) -> str:
        """Return a message suitable for display."""
        return f"{_GENERIC_FAILURE}: {self.detail}"


class PermissionDeniedError(PipelineError):
    """Raised when microphone access was not granted."""

    default_detail = "Microphone permission denied"

    @property
    def user_message(self) -> str:
        return (
            "Microphone access is required to record food entries. "
            "Please enable microphone permission in Settings."
        )


class DeviceError(PipelineError):
    """Raised when the input device or recording file cannot be set up."""

    default_detail = "No audio input device is available"

    @property
    def user_message(self) -> str:
        return f"Failed to start recording: {self.detail}"


class RecordingSaveError(PipelineError):
    """Raised when a stopped recording cannot be finalized."""

    default_detail = "Failed to save audio recording"

    @property
    def user_message(self) -> str:
        if self.detail == self.default_detail:
            return self.default_detail
        return f"{self.default_detail}: {self.detail}"


class NetworkError(PipelineError):
    """Raised when a remote endpoint cannot be reached."""

    default_detail = "Network connection failed"

    @property
    def user_message(self) -> str:
        return f"{_GENERIC_FAILURE}: network error ({self.detail})"


class ApiError(PipelineError):
    """Raised when a remote endpoint returned an error status."""

    default_detail = "Unknown API error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        self.message = self.detail


class InvalidResponseError(PipelineError):
    """Raised when a success response has an unexpected shape."""

    default_detail = "The service returned an unexpected response"


class DecodingError(PipelineError):
    """Raised when the nutrition analysis does not match the schema."""

    default_detail = "The nutrition analysis could not be decoded"


class EmptyTranscriptError(PipelineError):
    """Raised when speech recognition produced no text."""

    default_detail = "Transcript is empty"

    @property
    def user_message(self) -> str:
        return "Could not understand the audio. Please try again and speak clearly."


class NoFoodItemsDetectedError(PipelineError):
    """Raised when the analysis found no food in the transcript."""

    default_detail = "No food items detected"

    def __init__(self, transcript: str) -> None:
        super().__init__(f"No food items detected in: {transcript!r}")
        self.transcript = transcript

    @property
    def user_message(self) -> str:
        return (
            f'No food items detected. I heard: "{self.transcript}"\n\n'
            "Please try again and describe what you ate "
            '(e.g., "200 grams of chicken breast and a cup of rice").'
        )


class StorageError(PipelineError):
    """Raised when food entries cannot be written to the record store."""

    default_detail = "The record store rejected the entry"

    def __init__(self, detail: str | None = None, committed: int = 0) -> None:
        super().__init__(detail)
        self.committed = committed

    @property
    def user_message(self) -> str:
        return f"Failed to save food entries: {self.detail}"
