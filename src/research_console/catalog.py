"""Display metadata for the selectable data sources and language models."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class DataSource:
    """A searchable data source."""

    id: str
    name: str
    description: str
    category: Literal["public", "private"] = "public"
    badge: str | None = None


@dataclass(frozen=True)
class LLMProvider:
    """A language model available for analysis."""

    id: str
    name: str
    description: str
    pricing: str
    badge: str | None = None


DATA_SOURCES: tuple[DataSource, ...] = (
    DataSource(id="openalex", name="OpenAlex", description="2.5M cancer research papers"),
    DataSource(id="google-patents", name="Google Patents", description="15M patents worldwide"),
    DataSource(id="pubmed", name="PubMed", description="35M biomedical articles"),
    DataSource(id="document-vault", name="Document Vault", description="Internal documents", category="private", badge="Private"),
)

LLM_PROVIDERS: tuple[LLMProvider, ...] = (
    LLMProvider(id="claude", name="Claude Sonnet 4", description="Best reasoning & analysis", pricing="$3 / M tokens", badge="Recommended"),
    LLMProvider(id="gpt4", name="GPT-4 Turbo", description="Fast & versatile", pricing="$10 / M tokens"),
    LLMProvider(id="gemini", name="Gemini 1.5 Pro", description="Long context window", pricing="$1.25 / M tokens"),
    LLMProvider(id="ollama", name="Local Ollama", description="Self-hosted, private", pricing="Free", badge="Free"),
)


def get_source(source_id: str) -> DataSource | None:
    """Look up a data source by id."""
    return next((s for s in DATA_SOURCES if s.id == source_id), None)


def get_llm_provider(llm_id: str) -> LLMProvider | None:
    """Look up a language model by id."""
    return next((p for p in LLM_PROVIDERS if p.id == llm_id), None)
