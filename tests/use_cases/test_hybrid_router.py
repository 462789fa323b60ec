import json
from unittest.mock import AsyncMock, Mock

import pytest

from src.entities.idea import ClassificationResult, ExpansionOptions, MutationOptions, ReorganizationOptions
from src.entities.routing import Provider
from src.shared import grammars
from src.shared.errors import EmptyResponseError, NetworkError, RepairFailure, RepairFailureReason
from src.use_cases.hybrid_router import HybridRouter


def make_service(name, available=True):
    service = Mock()
    service.name = name
    service.is_available.return_value = available
    service.ensure_ready = AsyncMock(return_value=True)
    service.classify = AsyncMock()
    service.complete = AsyncMock()
    service.close = AsyncMock()
    return service


MUTATIONS = json.dumps([
    {"title": "Multiplayer", "description": "Play with friends", "differences": ["co-op", "chat"]},
    {"text": "Mobile", "description": "On phones"},
    {"unrelated": True},
    "stray string",
])

EXPANDED = """## Overview
A cozy farming game.

## Key Features / Mechanics
- Crops
- Weather

## Goals
Relax.

## Potential Challenges
Scope.

## Next Steps
Prototype."""


class TestHybridRouterRouting:
    @pytest.fixture
    def local(self):
        return make_service("local")

    @pytest.fixture
    def cloud(self):
        return make_service("cloud")

    @pytest.mark.asyncio
    async def test_cloud_preferred_serves_request(self, local, cloud):
        cloud.classify.return_value = ClassificationResult(category="game", tags=[], confidence=0.8)
        router = HybridRouter(local, cloud, prefer_cloud=True)

        result = await router.classify("idea")

        assert result.category == "game"
        assert router.get_last_provider() == Provider.CLOUD
        local.classify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cloud_failure_falls_back_to_local(self, local, cloud):
        cloud.complete.side_effect = NetworkError("Rate limit exceeded. Please try again later.", 429)
        local.complete.return_value = "local answer"
        router = HybridRouter(local, cloud)

        content = await router.complete("prompt")

        assert content == "local answer"
        assert router.get_last_provider() == Provider.LOCAL

    @pytest.mark.asyncio
    async def test_local_error_propagates_after_fallback(self, local, cloud):
        cloud.complete.side_effect = NetworkError("down")
        local.complete.side_effect = EmptyResponseError("nothing")
        router = HybridRouter(local, cloud)

        with pytest.raises(EmptyResponseError):
            await router.complete("prompt")

    @pytest.mark.asyncio
    async def test_unavailable_cloud_is_skipped(self, local):
        cloud = make_service("cloud", available=False)
        local.complete.return_value = "local"
        router = HybridRouter(local, cloud)

        assert await router.complete("prompt") == "local"
        cloud.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prefer_local(self, local, cloud):
        local.complete.return_value = "local"
        router = HybridRouter(local, cloud, prefer_cloud=False)

        await router.complete("prompt")

        cloud.complete.assert_not_awaited()
        assert router.get_last_provider() == Provider.LOCAL

    @pytest.mark.asyncio
    async def test_set_cloud_service_resets_last_provider(self, local, cloud):
        local.complete.return_value = "local"
        router = HybridRouter(local)
        await router.complete("prompt")

        router.set_cloud_service(cloud)

        assert router.get_last_provider() == Provider.NONE
        assert router.cloud_service is cloud

    @pytest.mark.asyncio
    async def test_ensure_ready_prefers_cloud(self, local, cloud):
        router = HybridRouter(local, cloud)

        assert await router.ensure_ready() is True
        local.ensure_ready.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ensure_ready_falls_back_to_local(self, local, cloud):
        cloud.ensure_ready.side_effect = NetworkError("down")
        router = HybridRouter(local, cloud)

        assert await router.ensure_ready() is True
        local.ensure_ready.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ensure_ready_without_backends(self):
        router = HybridRouter(make_service("local", available=False))

        assert await router.ensure_ready() is False
        assert router.is_available() is False

    @pytest.mark.asyncio
    async def test_close_closes_local_even_if_cloud_fails(self, local, cloud):
        cloud.close.side_effect = RuntimeError("boom")
        router = HybridRouter(local, cloud)

        with pytest.raises(RuntimeError):
            await router.close()

        local.close.assert_awaited_once()


class TestHybridRouterOperations:
    @pytest.fixture
    def local(self):
        return make_service("local")

    @pytest.mark.asyncio
    async def test_generate_mutations_filters_entries(self, local):
        local.complete.return_value = MUTATIONS
        router = HybridRouter(local)

        mutations = await router.generate_mutations("A farming game", MutationOptions(count=2, focus="social"))

        assert [m.title for m in mutations] == ["Multiplayer", "Mobile"]
        assert mutations[0].differences == ["co-op", "chat"]
        assert mutations[1].differences == []
        prompt, options = local.complete.await_args.args
        assert "generate 2 creative variations" in prompt
        assert prompt.endswith("Focus area: social")
        assert options.grammar == grammars.MUTATIONS
        assert options.n_predict == 4000

    @pytest.mark.asyncio
    async def test_generate_mutations_from_fenced_cloud_response(self, local):
        cloud = make_service("cloud")
        cloud.complete.return_value = "```json\n" + MUTATIONS + "\n```"
        router = HybridRouter(local, cloud)

        mutations = await router.generate_mutations("A farming game")

        assert len(mutations) == 2
        assert router.get_last_provider() == Provider.CLOUD

    @pytest.mark.asyncio
    async def test_mutation_fallback_to_local_keeps_grammar(self, local):
        cloud = make_service("cloud")
        cloud.complete.side_effect = NetworkError("down")
        local.complete.return_value = MUTATIONS
        router = HybridRouter(local, cloud)

        mutations = await router.generate_mutations("A farming game")

        assert len(mutations) == 2
        assert local.complete.await_args.args[1].grammar == grammars.MUTATIONS
        assert router.get_last_provider() == Provider.LOCAL

    @pytest.mark.asyncio
    async def test_truncated_mutations_are_repaired(self, local):
        local.complete.return_value = '[{"title": "A", "description": "first"}, {"title": "B", "descr'
        router = HybridRouter(local)

        mutations = await router.generate_mutations("idea")

        assert [m.title for m in mutations] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_empty_mutation_response(self, local):
        local.complete.return_value = "   "
        router = HybridRouter(local)

        with pytest.raises(EmptyResponseError):
            await router.generate_mutations("idea")

    @pytest.mark.asyncio
    async def test_no_valid_mutations(self, local):
        local.complete.return_value = '[{"foo": 1}, 2]'
        router = HybridRouter(local)

        with pytest.raises(RepairFailure) as exc_info:
            await router.generate_mutations("idea")

        assert exc_info.value.reason == RepairFailureReason.NO_VALID_ENTRIES

    @pytest.mark.asyncio
    async def test_expand_idea_parses_sections(self, local):
        local.complete.return_value = EXPANDED
        router = HybridRouter(local)

        result = await router.expand_idea("farming game", ExpansionOptions(detail_level="brief"))

        assert result.original_text == "farming game"
        assert result.expanded_text == EXPANDED
        assert result.structure.overview == "A cozy farming game."
        assert result.structure.features == "- Crops\n- Weather"
        assert result.structure.challenges == "Scope."
        assert result.structure.next_steps == "Prototype."
        assert local.complete.await_args.args[0].endswith("Detail level: brief")

    @pytest.mark.asyncio
    async def test_reorganize_idea_reports_changes(self, local):
        original = "## Summary\nx\n\n## Problem\ny\n\n## Notes\nz"
        reorganized = "## Problem\ny\n\n## Summary\nx\n\n## Solution\nw"
        local.complete.return_value = reorganized
        router = HybridRouter(local)

        result = await router.reorganize_idea(original, ReorganizationOptions(preserve_sections=["Summary"]))

        assert result.changes.sections_added == ["Solution"]
        assert result.changes.sections_removed == ["Notes"]
        assert result.changes.sections_reorganized == ["Summary", "Problem"]
        assert result.changes.original_length == len(original)
        assert result.changes.reorganized_length == len(reorganized)

    @pytest.mark.asyncio
    async def test_expand_empty_response(self, local):
        local.complete.return_value = ""
        router = HybridRouter(local)

        with pytest.raises(EmptyResponseError):
            await router.expand_idea("idea")
