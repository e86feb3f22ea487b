"""Deterministic collaborators shared by the test modules."""

from tts_proxy.records import FailureRecord, SuccessRecord, iso_timestamp


class FakeClock:
    """Clock returning epoch seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class StubSynthesizer:
    """Returns canned audio (or raises) and optionally burns fake time."""

    def __init__(self, audio: bytes = b"", error: Exception = None,
                 clock: FakeClock = None, delay: float = 0.0):
        self.audio = audio
        self.error = error
        self.clock = clock
        self.delay = delay
        self.calls = []

    async def synthesize(self, text, voice, audio_format):
        self.calls.append((text, voice, audio_format))
        if self.clock is not None:
            self.clock.advance(self.delay)
        if self.error is not None:
            raise self.error
        return self.audio


def make_success(start_ms=1_700_000_000_000.0, upstream_ms=120.0, size=37,
                 voice="nova", audio_format="wav", text="Hello world"):
    return SuccessRecord(
        timestamp=iso_timestamp(start_ms),
        text_length=len(text),
        word_count=len(text.split()),
        voice=voice,
        request_format=audio_format,
        client_address="127.0.0.1",
        request_start=start_ms,
        upstream_request_start=start_ms + 1,
        upstream_response_end=start_ms + 1 + upstream_ms,
        completion_time=start_ms + 2 + upstream_ms,
        audio_size=size,
    )


def make_failure(start_ms=1_700_000_000_000.0, message="rate limited",
                 voice="alloy", audio_format="mp3", text="Hi"):
    return FailureRecord(
        timestamp=iso_timestamp(start_ms),
        text_length=len(text),
        word_count=len(text.split()),
        voice=voice,
        request_format=audio_format,
        client_address="10.0.0.7",
        request_start=start_ms,
        upstream_request_start=start_ms + 1,
        upstream_response_end=start_ms + 50,
        failure_time=start_ms + 51,
        message=message,
    )
