from typing import Optional

from src.entities.completion import CompletionOptions
from src.entities.idea import (
    ClassificationResult,
    ExpansionOptions,
    ExpansionResult,
    ExpansionStructure,
    Mutation,
    MutationOptions,
    ReorganizationChanges,
    ReorganizationOptions,
    ReorganizationResult,
)
from src.entities.routing import Provider
from src.shared import grammars, prompts
from src.shared.errors import EmptyResponseError, RepairFailure, RepairFailureReason
from src.shared.json_repair import parse_structured
from src.shared.logger import Logger
from src.shared.markdown_sections import diff_sections, parse_expansion_structure
from src.shared.protocols import LLMServiceProtocol

logger = Logger.get(__name__)

MUTATION_OPTIONS = {"temperature": 0.8, "n_predict": 4000, "stop": ["\n]"]}
EXPANSION_OPTIONS = {"temperature": 0.7, "n_predict": 3000}
REORGANIZATION_OPTIONS = {"temperature": 0.5, "n_predict": 4000}


class HybridRouter:
    """
    Routes requests between an optional cloud backend and the local server.

    When the cloud backend is preferred and available it is tried first; any
    failure there is logged and the request falls back to the local backend,
    whose error is the one that propagates.
    """

    def __init__(self, local_service: LLMServiceProtocol, cloud_service: Optional[LLMServiceProtocol] = None,
                 prefer_cloud: bool = True):
        self.local_service = local_service
        self.cloud_service = cloud_service
        self.prefer_cloud = prefer_cloud
        self.last_provider = Provider.NONE

    def get_last_provider(self) -> Provider:
        return self.last_provider

    def set_cloud_service(self, cloud_service: Optional[LLMServiceProtocol]) -> None:
        self.cloud_service = cloud_service
        self.last_provider = Provider.NONE

    def set_prefer_cloud(self, prefer_cloud: bool) -> None:
        self.prefer_cloud = prefer_cloud

    def is_available(self) -> bool:
        return self.local_service.is_available() or bool(self.cloud_service and self.cloud_service.is_available())

    def _cloud_preferred(self) -> bool:
        return self.prefer_cloud and self.cloud_service is not None and self.cloud_service.is_available()

    async def ensure_ready(self) -> bool:
        if self._cloud_preferred():
            try:
                if await self.cloud_service.ensure_ready():
                    return True
            except Exception as e:
                logger.warning(f"Cloud provider ensure_ready failed, falling back to local: {e}")

        if self.local_service.is_available():
            return await self.local_service.ensure_ready()
        return False

    async def classify(self, text: str) -> ClassificationResult:
        if self._cloud_preferred():
            try:
                result = await self.cloud_service.classify(text)
                self.last_provider = Provider.CLOUD
                logger.debug(f"Used cloud provider: {self.cloud_service.name}")
                return result
            except Exception as e:
                logger.warning(f"Cloud provider failed, falling back to local: {e}")

        result = await self.local_service.classify(text)
        self.last_provider = Provider.LOCAL
        logger.debug("Used local provider")
        return result

    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        if self._cloud_preferred():
            try:
                content = await self.cloud_service.complete(prompt, options)
                self.last_provider = Provider.CLOUD
                return content
            except Exception as e:
                logger.warning(f"Cloud provider failed, falling back to local: {e}")

        content = await self.local_service.complete(prompt, options)
        self.last_provider = Provider.LOCAL
        return content

    async def _complete_non_empty(self, prompt: str, options: CompletionOptions) -> str:
        content = await self.complete(prompt, options)
        if not content or not content.strip():
            raise EmptyResponseError(
                "The model returned an empty response. It may have stopped generating or encountered an error. "
                "Please try again."
            )
        return content

    async def generate_mutations(self, text: str, options: Optional[MutationOptions] = None) -> list[Mutation]:
        """
        Generate variations of an idea.

        Raises:
            EmptyResponseError: The model produced nothing.
            RepairFailure: The response held no usable mutation entries.
        """
        options = options or MutationOptions()
        prompt = prompts.mutations(text, options.category, options.tags, options.count, options.focus)
        # Cloud payloads never carry the grammar, so it is always set for the local fallback.
        content = await self._complete_non_empty(
            prompt, CompletionOptions(grammar=grammars.MUTATIONS, **MUTATION_OPTIONS)
        )

        result = parse_structured(content, expect_array=True)
        if not result.ok:
            logger.warning(f"Failed to parse mutations ({result.failure.value}): {content[:200]!r}")
            raise RepairFailure("Failed to parse mutations from AI response. Please try again.", result.failure, content)

        mutations = [mutation for mutation in map(self._to_mutation, result.value) if mutation is not None]
        if not mutations:
            raise RepairFailure(
                "No valid mutations found in AI response. Please try again.",
                RepairFailureReason.NO_VALID_ENTRIES,
                content,
            )
        return mutations

    @staticmethod
    def _to_mutation(entry) -> Optional[Mutation]:
        if not isinstance(entry, dict) or not any(key in entry for key in ("title", "text", "description")):
            return None
        differences = entry.get("differences")
        return Mutation(
            title=str(entry.get("title") or entry.get("text") or ""),
            description=str(entry.get("description") or ""),
            differences=[str(d) for d in differences] if isinstance(differences, list) else [],
        )

    async def expand_idea(self, text: str, options: Optional[ExpansionOptions] = None) -> ExpansionResult:
        options = options or ExpansionOptions()
        prompt = prompts.expansion(text, options.category, options.tags, options.detail_level)
        expanded = await self._complete_non_empty(prompt, CompletionOptions(**EXPANSION_OPTIONS))
        return ExpansionResult(
            expanded_text=expanded,
            original_text=text,
            structure=ExpansionStructure(**parse_expansion_structure(expanded)),
        )

    async def reorganize_idea(self, text: str, options: Optional[ReorganizationOptions] = None) -> ReorganizationResult:
        options = options or ReorganizationOptions()
        prompt = prompts.reorganization(
            text, options.category, options.tags, options.preserve_sections, options.target_structure
        )
        reorganized = await self._complete_non_empty(prompt, CompletionOptions(**REORGANIZATION_OPTIONS))
        return ReorganizationResult(
            reorganized_text=reorganized,
            original_text=text,
            changes=ReorganizationChanges(
                **diff_sections(text, reorganized),
                original_length=len(text),
                reorganized_length=len(reorganized),
            ),
        )

    async def close(self) -> None:
        try:
            if self.cloud_service is not None:
                await self.cloud_service.close()
        finally:
            await self.local_service.close()
