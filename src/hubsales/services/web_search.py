import logging
from dataclasses import dataclass, field
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class WebSearchError(Exception):
    """The search provider could not answer a query."""


@dataclass
class SearchSource:
    title: str
    url: str


@dataclass
class SearchResponse:
    query: str
    answer: str = ""
    sources: List[SearchSource] = field(default_factory=list)


class WebSearchService:
    """Web research through Perplexity's OpenAI-compatible chat API.

    Perplexity answers with a synthesized text plus a list of citation URLs,
    so one request covers both search and summarization.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._client: AsyncOpenAI | None = None

    def is_configured(self) -> bool:
        return bool(self._settings.perplexity_api_key)

    def _make_client(self) -> AsyncOpenAI:
        """Construct the search client (uses perplexity_* settings and timeout)."""
        if self._client is None:
            if not self.is_configured():
                raise WebSearchError("PERPLEXITY_API_KEY environment variable is not set")
            self._client = AsyncOpenAI(
                api_key=self._settings.perplexity_api_key,
                base_url=self._settings.perplexity_base_url,
                timeout=self._settings.search_request_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def search(
        self,
        query: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> SearchResponse:
        """Run one search query and return the answer with its cited sources."""
        client = self._make_client()
        model = model or self._settings.search_model
        logger.info('Searching with Perplexity: "%s" (model: %s)', query, model)
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "system",
                        "content": system_prompt or self._settings.search_default_system_prompt,
                    },
                    {"role": "user", "content": query},
                ],
            )
        except OpenAIError as e:
            logger.error('Search error for "%s": %s', query, e)
            raise WebSearchError(f"Web search failed: {e}") from e

        answer = ""
        if response.choices:
            answer = response.choices[0].message.content or ""
        # citations is a Perplexity extension to the chat completion payload
        citations = getattr(response, "citations", None) or []
        sources = [
            SearchSource(title=f"Source {i}", url=str(url))
            for i, url in enumerate(citations, 1)
        ]
        logger.info(
            "Perplexity search completed (%d chars, %d citations)", len(answer), len(sources)
        )
        return SearchResponse(query=query, answer=answer, sources=sources)

    async def research_brand(
        self, brand_name: str, brand_url: Optional[str] = None
    ) -> SearchResponse:
        site = f" (website: {brand_url})" if brand_url else ""
        query = (
            f"Research {brand_name}{site}. Include: company overview, brand positioning, "
            "target customers, locations, products/services, community involvement, "
            "and recent news or marketing campaigns."
        )
        return await self.search(
            query,
            model=self._settings.search_model_pro,
            system_prompt=self._settings.search_brand_research_system_prompt,
        )

    async def search_company_news(self, company_name: str) -> SearchResponse:
        query = (
            f"What are the latest news and announcements about {company_name}? "
            "Focus on marketing campaigns, new products, expansions, and community "
            "initiatives from the past 6 months."
        )
        return await self.search(
            query,
            system_prompt=self._settings.search_company_news_system_prompt,
        )

    async def search_competitors(
        self, brand_name: str, industry: Optional[str] = None
    ) -> SearchResponse:
        industry_context = f" in the {industry} industry" if industry else ""
        query = (
            f"Who are the main competitors of {brand_name}{industry_context}? "
            f"How does {brand_name} differentiate itself? What is their market position?"
        )
        return await self.search(
            query,
            system_prompt=self._settings.search_competitors_system_prompt,
        )
