"""Recommendation Manager: picks media to attach to chat answers."""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from app.core.v1.content_catalog import (
    CATEGORY_IDS,
    CONTENT_CATEGORIES,
    ContentCategory,
    MediaItem,
    build_catalog,
    categories_prompt_table,
)
from app.core.v1.exceptions import ClassificationException
from app.core.v1.log_manager import LogManager
from app.settings.v1.general import SETTINGS as GENERAL_SETTINGS
from app.settings.v1.openai import OpenAISettings


CLASSIFICATION_PROMPT = """Analyze this user query and determine which media category(ies) would be most helpful to send.

Available media categories:
{categories}

User query: "{query}"

Instructions:
1. The query may be in ANY language (Thai, English, Korean, Chinese, Japanese, etc.)
2. Decide whether the user is asking for or about one of the categories above
3. Return ONLY the category value(s), comma-separated if multiple, or "none" if no media is appropriate

Examples:
- "แนะนำโรงพยาบาลหน่อย" (Thai) -> hospital
- "hospital recommendation" (English) -> hospital
- "병원 추천해주세요" (Korean) -> hospital
- "医院在哪里" (Chinese) -> hospital
- "ราคาเท่าไหร่" (Thai - asking price) -> none
- "what is SRS" (English) -> none

Respond with ONLY the category value, comma-separated values, or "none":"""


class RecommendationManager:
    """
    Classifies a query into content categories and resolves them to media.

    Classification is advisory: every failure ends in "no categories" or the
    keyword matcher, never in an error for the caller.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        catalog: Optional[Sequence[MediaItem]] = None,
        categories: Sequence[ContentCategory] = CONTENT_CATEGORIES,
        use_hosted_model: Optional[bool] = None
    ):
        """Initialize Recommendation Manager.

        Args:
            client: OpenAI client; built from settings when an API key exists.
            catalog: Media catalog; defaults to the built-in one plus the
                optional catalog file from settings.
            categories: Known content categories.
            use_hosted_model: Force the hosted classifier on or off.
        """
        self.logger = LogManager(__name__)

        openai_settings = OpenAISettings()
        self.model = openai_settings.CLASSIFICATION_MODEL

        if client is None and openai_settings.OPENAI_API_KEY and use_hosted_model is not False:
            client = AsyncOpenAI(
                api_key=openai_settings.OPENAI_API_KEY,
                base_url=openai_settings.OPENAI_BASE_URL or None
            )
        self.client = client if use_hosted_model is not False else None

        self.categories = tuple(categories)
        self.category_ids = frozenset(c.id for c in self.categories) or CATEGORY_IDS
        self.catalog = tuple(catalog) if catalog is not None else build_catalog(
            GENERAL_SETTINGS.MEDIA_CATALOG_PATH
        )

        self.logger.info(
            "Recommendation Manager initialized",
            classifier="hosted" if self.client else "keywords",
            catalog_size=len(self.catalog)
        )

    async def detect_categories(self, query: str) -> List[str]:
        """
        Classify ``query`` into known category ids, deduplicated, in order.

        Uses the hosted model when configured and the keyword matcher when it
        is not or when the hosted call fails.
        """
        if self.client is None:
            self.logger.debug("Hosted classifier not available, using keywords")
            return self.detect_categories_by_keywords(query)

        try:
            return await self._classify_with_model(query)
        except ClassificationException as err:
            self.logger.warning("Hosted classification failed, using keywords", error=str(err))
            return self.detect_categories_by_keywords(query)

    async def _classify_with_model(self, query: str) -> List[str]:
        prompt = CLASSIFICATION_PROMPT.format(
            categories=categories_prompt_table(self.categories),
            query=query
        )
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
                max_tokens=20
            )
        except OpenAIError as err:
            raise ClassificationException(f"Classification request failed: {err}") from err

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        return self.parse_classification(text)

    def parse_classification(self, text: str) -> List[str]:
        """
        Parse a comma-separated model answer into known category ids.

        Unknown tokens are dropped; "none", "null" and empty answers mean no
        category.
        """
        result = (text or "").strip().lower()
        if result in ("", "none", "null"):
            return []

        tokens = [token.strip().strip('"\'.') for token in result.split(",")]
        matched = self._dedupe(t for t in tokens if t in self.category_ids)

        if not matched:
            self.logger.info("Classifier returned no known category", answer=result[:80])
        return matched

    def detect_categories_by_keywords(self, query: str) -> List[str]:
        """Substring match of the lower-cased query against each category's triggers."""
        normalized = (query or "").lower()
        return self._dedupe(
            category.id
            for category in self.categories
            if any(trigger.lower() in normalized for trigger in category.triggers)
        )

    @staticmethod
    def _dedupe(values: Iterable[str]) -> List[str]:
        return list(dict.fromkeys(values))

    def items_for_categories(
        self,
        categories: Iterable[str],
        max_per_category: int,
        kind: Optional[str] = None
    ) -> List[MediaItem]:
        """
        Take up to ``max_per_category`` catalog items per category, keeping
        category order. ``kind`` restricts the result to images or videos.
        """
        items: List[MediaItem] = []
        for category in categories:
            matching = [
                item for item in self.catalog
                if item.category == category and (kind is None or item.kind == kind)
            ]
            items.extend(matching[:max(max_per_category, 0)])
        return items

    async def _safe_categories(self, query: str) -> List[str]:
        try:
            return await self.detect_categories(query)
        except Exception as err:
            # Enrichment must never break the primary answer
            self.logger.error("Media enrichment failed", error=str(err))
            return []

    async def enrich(self, response_text: str, query: str, max_items: int) -> Dict[str, Any]:
        """
        Pair an answer with media relevant to the query.

        Returns:
            Dict[str, Any]: ``response`` (unchanged text), ``categories`` and
            ``media`` (list of ``MediaItem``).
        """
        categories = await self._safe_categories(query)

        if not categories:
            self.logger.debug("No relevant media categories detected")
            return {"response": response_text, "categories": [], "media": []}

        media = self.items_for_categories(categories, max_items)
        self.logger.info(
            f"Selected {len(media)} media item(s)",
            categories=", ".join(categories)
        )
        return {"response": response_text, "categories": categories, "media": media}

    async def enrich_response(
        self,
        response_text: str,
        query: str,
        max_videos: int,
        max_images: int
    ) -> Dict[str, Any]:
        """
        Enrich an answer and split the media into the API's image/video lists.

        Returns:
            Dict[str, Any]: ``response``, ``images`` (``{url, caption}``) and
            ``videos`` (``{url, title}``).
        """
        categories = await self._safe_categories(query)

        videos = self.items_for_categories(categories, max_videos, kind="video")
        images = self.items_for_categories(categories, max_images, kind="image")

        if categories:
            self.logger.info(
                f"Selected {len(images)} image(s) and {len(videos)} video(s)",
                categories=", ".join(categories)
            )

        return {
            "response": response_text,
            "images": [{"url": item.url, "caption": item.description or item.title} for item in images],
            "videos": [{"url": item.url, "title": item.title} for item in videos],
        }
