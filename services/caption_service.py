"""
Caption Service Module

This module handles AI caption generation using Google's Gemini API.
It turns a recipe snapshot into an Instagram caption and keeps the caption
within Instagram's length limit.
"""

import json
from typing import Any, List, Optional

import google.generativeai as genai

from config import settings
from data.models import CaptionResult, RecipeSnapshot
from utils.logger import get_logger

logger = get_logger(__name__)

NO_INGREDIENTS_TEXT = "• Geen ingrediënten beschikbaar"


class CaptionService:
    """Service for Instagram caption generation with Google's Gemini API."""

    def __init__(self, api_key: Optional[str] = None, model=None,
                 max_caption_length: Optional[int] = None):
        """
        Initialize the caption service with the Gemini API.

        Configures the API key and selects an appropriate model based on availability,
        unless a model object is passed in directly.

        Args:
            api_key: Gemini API key, defaults to settings.GOOGLE_AI_API_KEY
            model: Preconfigured generative model (mainly for tests)
            max_caption_length: Caption limit, defaults to settings.MAX_CAPTION_LENGTH
        """
        self.max_caption_length = max_caption_length or settings.MAX_CAPTION_LENGTH

        if model is not None:
            self.model = model
            return

        api_key = api_key or settings.GOOGLE_AI_API_KEY
        if not api_key:
            raise ValueError("Missing required GOOGLE_AI_API_KEY")

        genai.configure(api_key=api_key)

        try:
            available_models = [m.name for m in genai.list_models()]

            # Select a model based on preference order
            model_name = None
            for preferred in settings.DEFAULT_AI_MODELS:
                for available in available_models:
                    if preferred in available:
                        model_name = available
                        break
                if model_name:
                    break

            if not model_name and len(available_models) > 0:
                model_name = available_models[0]

            if not model_name:
                raise ValueError("No Gemini models available")

            logger.info(f"Selected AI model: {model_name}")
            self.model = genai.GenerativeModel(model_name=model_name)

        except Exception as e:
            logger.error(f"Error initializing Gemini AI: {e}")
            raise

    def generate_caption(self, recipe: RecipeSnapshot) -> CaptionResult:
        """
        Generate an Instagram caption for a recipe.

        Args:
            recipe: The recipe snapshot to write about

        Returns:
            CaptionResult: The caption, or success False with the error message
        """
        try:
            prompt = self.build_prompt(recipe)
            logger.debug(f"Caption prompt: {prompt[:500]}...")

            response = self.model.generate_content(
                prompt,
                generation_config={
                    "temperature": settings.CAPTION_TEMPERATURE,
                    "max_output_tokens": settings.CAPTION_MAX_OUTPUT_TOKENS,
                }
            )
            caption = (response.text or "").strip()

            if not caption:
                return CaptionResult(success=False, error="Empty caption returned by model")

            if len(caption) > self.max_caption_length:
                logger.warning(f"Caption too long ({len(caption)} chars), truncating")
                caption = self.truncate_caption(caption)

            logger.info(f"Generated caption for '{recipe.title}' ({len(caption)} chars)")
            return CaptionResult(success=True, caption=caption)

        except Exception as e:
            logger.error(f"Error generating caption: {e}")
            return CaptionResult(success=False, error=str(e) or "Unknown error occurred")

    def build_prompt(self, recipe: RecipeSnapshot) -> str:
        """Fill the caption prompt with the recipe's details."""
        instructions = "\n• ".join(str(step) for step in recipe.instructions)

        return f"""Je bent de social media redacteur van Bonchef, een Nederlandse recepten-app.
Schrijf een Instagram caption in het Nederlands voor het volgende recept.

Recept: {recipe.title}
Bron: {recipe.source_display_name}

Ingrediënten:
{self.format_ingredients(recipe.ingredients)}

Bereiding:
• {instructions}

Eisen:
1. Begin met een pakkende openingszin met één passende emoji
2. Vermeld de bron "{recipe.source_display_name}" expliciet
3. Beschrijf kort waarom dit recept de moeite waard is, zonder overdrijving
4. Sluit af met 5 tot 10 relevante hashtags, waaronder #bonchef
5. Maximaal {self.max_caption_length} tekens

Geef ALLEEN de caption terug, zonder toelichting."""

    def format_ingredients(self, ingredients: Any) -> str:
        """
        Format the stored ingredient structure into bullet lines.

        Ingredients are either plain strings or groups shaped like
        ``{"name": ..., "ingredients": [{"quantity": {"low": ...}, "unit": ..., "description": ...}]}``.

        Args:
            ingredients: The recipe's ingredients column

        Returns:
            str: One bullet line per ingredient or group
        """
        if not ingredients or not isinstance(ingredients, list):
            return NO_INGREDIENTS_TEXT

        lines: List[str] = []
        for ingredient in ingredients:
            if isinstance(ingredient, str):
                lines.append(f"• {ingredient}")
            elif isinstance(ingredient, dict) and ingredient.get('name'):
                sub_items = []
                for sub in ingredient.get('ingredients') or []:
                    quantity = (sub.get('quantity') or {}).get('low') or ''
                    parts = [str(quantity), sub.get('unit') or '', sub.get('description') or '']
                    sub_items.append(" ".join(p for p in parts if p).strip())
                sub_text = ", ".join(s for s in sub_items if s)
                lines.append(f"• {ingredient['name']}{': ' + sub_text if sub_text else ''}")
            else:
                lines.append(f"• {json.dumps(ingredient, ensure_ascii=False)}")

        return "\n".join(lines) or NO_INGREDIENTS_TEXT

    def truncate_caption(self, caption: str) -> str:
        """
        Shorten a caption to the maximum length.

        Cuts at the last sentence end when it lies beyond 70% of the limit,
        otherwise hard-cuts and appends an ellipsis.
        """
        if len(caption) <= self.max_caption_length:
            return caption

        window = caption[:self.max_caption_length - 50]
        last_sentence_end = max(window.rfind('.'), window.rfind('!'), window.rfind('?'))

        if last_sentence_end > self.max_caption_length * 0.7:
            return caption[:last_sentence_end + 1]

        return caption[:self.max_caption_length - 3] + "..."
