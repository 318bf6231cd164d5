"""Shared fixtures: a fake google-genai client and test settings."""

import asyncio
import json

import pytest
from google.genai import types

from posegen.core.config import Settings
from posegen.schemas.generate import GenerationRequest, SourceImage
from posegen.services.gemini_pose import GeminiPoseService
from posegen.workers.orchestrator import GenerationOrchestrator

PNG_HEADER = b"\x89PNG\r\n\x1a\n"
SOURCE_BYTES = PNG_HEADER + b"source-portrait"


def text_response(text):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[types.Part(text=text)]))]
    )


def image_response(data):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[
            types.Part(text="Here is your image."),
            types.Part(inline_data=types.Blob(mime_type="image/png", data=data)),
        ]))]
    )


def image_for(pose):
    return PNG_HEADER + pose.encode()


def pose_text(contents):
    """Extract the instruction text from an image request."""
    return " ".join(part.text for part in contents.parts if part.text)


class FakeModels:
    """Stands in for client.aio.models."""
    
    def __init__(self, settings):
        self.settings = settings
        self.ideas = [f"pose {i}" for i in range(1, 10)]
        self.idea_text = None
        self.idea_error = None
        self.fail_poses = set()
        self.no_image_poses = set()
        self.delays = {}
        self.idea_calls = []
        self.image_calls = []
        self.in_flight = 0
        self.max_in_flight = 0
    
    async def generate_content(self, model, contents, config=None):
        if model == self.settings.GEMINI_IDEA_MODEL:
            self.idea_calls.append((contents, config))
            if self.idea_error:
                raise self.idea_error
            if self.idea_text is not None:
                return text_response(self.idea_text)
            return text_response(json.dumps(self.ideas))
        
        self.image_calls.append((contents, config))
        text = pose_text(contents)
        pose = next((p for p in self.ideas if f"'{p}'" in text), None)
        
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(pose, 0))
        finally:
            self.in_flight -= 1
        
        if pose in self.fail_poses:
            raise ConnectionError(f"network error for {pose}")
        if pose in self.no_image_poses:
            return text_response("I cannot draw that.")
        return image_response(image_for(pose))


class FakeAio:
    def __init__(self, models):
        self.models = models


class FakeClient:
    def __init__(self, settings):
        self.models_impl = FakeModels(settings)
        self.aio = FakeAio(self.models_impl)


@pytest.fixture
def test_settings():
    return Settings(GEMINI_API_KEY="test-key", SESSION_TTL_SECONDS=60, _env_file=None)


@pytest.fixture
def fake_client(test_settings):
    return FakeClient(test_settings)


@pytest.fixture
def fake_models(fake_client):
    return fake_client.models_impl


@pytest.fixture
def pose_service(fake_client, test_settings):
    return GeminiPoseService(client=fake_client, settings=test_settings)


@pytest.fixture
def orchestrator(pose_service, test_settings):
    return GenerationOrchestrator(pose_service=pose_service, settings=test_settings)


@pytest.fixture
def source_image():
    return SourceImage.from_bytes(SOURCE_BYTES, "image/png")


@pytest.fixture
def make_request(source_image):
    def _make(theme="posing in a futuristic city", num_poses=9, aspect_ratio="1:1"):
        return GenerationRequest(
            source=source_image,
            theme=theme,
            aspect_ratio=aspect_ratio,
            num_poses=num_poses,
        )
    return _make
