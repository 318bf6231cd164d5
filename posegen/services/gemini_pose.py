"""
Gemini Pose Service
Wraps the two remote-model operations used by a run:
pose ideation (gemini-2.5-flash, JSON mode) and per-pose image
synthesis (gemini-2.5-flash-image, "Nano Banana").
Documentation: https://ai.google.dev/gemini-api/docs/image-generation
"""

import json
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from posegen.core.config import Settings, settings as default_settings
from posegen.core.exceptions import ConfigurationError, IdeationFailure
from posegen.schemas.generate import AspectRatio, SourceImage

logger = logging.getLogger(__name__)


ASPECT_RATIO_INSTRUCTIONS = {
    AspectRatio.SQUARE: "CRITICAL: The generated image MUST have a 1:1 aspect ratio (a perfect square).",
    AspectRatio.PORTRAIT: (
        "CRITICAL: The generated image MUST have a 9:16 aspect ratio (vertical portrait). "
        "Re-frame the entire scene to fit this vertical format."
    ),
    AspectRatio.LANDSCAPE: (
        "CRITICAL: The generated image MUST have a 16:9 aspect ratio (horizontal landscape). "
        "Re-frame the entire scene to fit this widescreen format."
    ),
}


class GeminiPoseService:
    """Client wrapper for pose ideation and single-pose image generation."""
    
    IDEAS_PROMPT = (
        'Based on the theme "{theme}", generate a JSON array of {count} unique, simple, '
        "and distinct full-body pose descriptions for a person. "
        "Only return a valid JSON array of strings."
    )
    
    POSE_PROMPT = (
        "{aspect_instruction} Create a high-quality, photorealistic image of the person "
        "from the input photo. Their face must be clearly visible and very similar to the "
        "original. They are in the following pose: '{pose}'. "
        "The background is a scene based on the theme: '{theme}'."
    )
    
    def __init__(self, client=None, settings: Optional[Settings] = None):
        settings = settings or default_settings
        if not settings.GEMINI_API_KEY:
            raise ConfigurationError()
        
        self.client = client if client is not None else genai.Client(api_key=settings.GEMINI_API_KEY)
        self.idea_model = settings.GEMINI_IDEA_MODEL
        self.image_model = settings.GEMINI_IMAGE_MODEL
        logger.info(f"[Gemini] Initialized: ideas={self.idea_model}, images={self.image_model}")
    
    async def get_pose_ideas(self, theme: str, count: int) -> List[str]:
        """
        Ask the text model for `count` pose descriptions tied to `theme`.
        
        Returns up to `count` distinct strings, in the model's order.
        Raises IdeationFailure on any remote error or malformed payload.
        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self.idea_model,
                contents=self.IDEAS_PROMPT.format(theme=theme, count=count),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(
                            type=types.Type.STRING,
                            description="A description of a person's pose.",
                        ),
                    ),
                ),
            )
            ideas = self._parse_ideas(response.text or "")
        except Exception as e:
            logger.error(f"[Gemini] Error generating pose ideas: {e}")
            raise IdeationFailure(details={"theme": theme, "count": count, "cause": repr(e)}) from e
        
        distinct = list(dict.fromkeys(ideas))
        if len(distinct) > count:
            logger.info(f"[Gemini] Model returned {len(distinct)} ideas, keeping {count}")
            distinct = distinct[:count]
        logger.info(f"[Gemini] Got {len(distinct)} pose ideas for theme '{theme[:50]}'")
        return distinct
    
    @staticmethod
    def _parse_ideas(text: str) -> List[str]:
        """Parse the ideation body; must be a flat JSON array of strings."""
        # response_mime_type should prevent fences, but some model versions still add them
        cleaned = text.replace("```json", "").replace("```", "").strip()
        ideas = json.loads(cleaned)
        if isinstance(ideas, list) and all(isinstance(item, str) for item in ideas):
            return ideas
        raise ValueError("Invalid format for pose ideas.")
    
    def build_pose_prompt(self, pose: str, theme: str, aspect_ratio: AspectRatio) -> str:
        return self.POSE_PROMPT.format(
            aspect_instruction=ASPECT_RATIO_INSTRUCTIONS[AspectRatio.parse(aspect_ratio)],
            pose=pose,
            theme=theme,
        )
    
    async def generate_single_pose(
        self,
        source: SourceImage,
        pose: str,
        theme: str,
        aspect_ratio: AspectRatio = AspectRatio.SQUARE,
    ) -> Optional[bytes]:
        """
        Generate one image of the source person in `pose`.
        
        Returns the bytes of the first inline image part, or None when the
        call failed or produced no image. Never raises.
        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self.image_model,
                contents=types.Content(
                    role="user",
                    parts=[
                        types.Part.from_bytes(data=source.raw_bytes, mime_type=source.mime_type),
                        types.Part(text=self.build_pose_prompt(pose, theme, aspect_ratio)),
                    ],
                ),
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                ),
            )
            
            if not response.candidates or response.candidates[0].content is None:
                logger.warning(f"[Gemini] No candidates for pose '{pose[:60]}'")
                return None
            
            candidate = response.candidates[0]
            for part in candidate.content.parts or []:
                if part.inline_data is not None and part.inline_data.data:
                    # inline_data.data is already base64-decoded bytes
                    return part.inline_data.data
            
            logger.warning(
                f"[Gemini] No image part for pose '{pose[:60]}' "
                f"(finish reason: {candidate.finish_reason})"
            )
            return None
            
        except Exception as e:
            logger.warning(f"[Gemini] Error generating pose for prompt '{pose[:60]}': {e}", exc_info=True)
            return None
