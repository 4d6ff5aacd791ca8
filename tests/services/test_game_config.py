"""Tests for GameConfigService."""

from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError

from rewards.models.game import GameKind
from rewards.schemas.game import GameConfigUpdate
from rewards.services.game_config import GameConfigService, coerce_game_kind
from rewards.utils.db import run_in_unit_of_work
from rewards.utils.errors import ValidationError


@pytest.fixture
def config_call(session_factory):
    async def _call(method: str, *args, **kwargs):
        async def work(session):
            return await getattr(GameConfigService(session), method)(*args, **kwargs)

        return await run_in_unit_of_work(work, session_factory)

    return _call


class TestGameConfigService:
    @pytest.mark.asyncio
    async def test_defaults_created_on_first_read(self, config_call):
        config = await config_call("get", "coin_flip")

        assert config.game_kind == GameKind.COIN_FLIP
        assert config.name == "Coin Flip"
        assert config.enabled is True
        assert config.min_bet == Decimal("1")
        assert config.max_bet == Decimal("100")
        assert config.house_edge_percent == Decimal("5")
        assert config.jackpot_contribution_rate == Decimal("0.05")

    @pytest.mark.asyncio
    async def test_list_is_ordered(self, config_call):
        configs = await config_call("list_configs")

        assert [c.game_kind for c in configs] == list(GameKind)

    @pytest.mark.asyncio
    async def test_partial_update(self, config_call):
        changes = GameConfigUpdate(max_bet=Decimal("250"), custom_config={"sides": 12})

        config = await config_call("update", GameKind.DICE_ROLL, changes)

        assert config.max_bet == Decimal("250")
        assert config.min_bet == Decimal("1")
        assert config.custom_config == {"sides": 12}

    @pytest.mark.asyncio
    async def test_update_cannot_invert_bet_range(self, config_call):
        with pytest.raises(ValidationError):
            await config_call("update", GameKind.SPIN_WHEEL, GameConfigUpdate(min_bet=Decimal("500")))

        config = await config_call("get", GameKind.SPIN_WHEEL)
        assert config.min_bet == Decimal("1")

    def test_update_schema_rejects_bad_values(self):
        with pytest.raises(SchemaValidationError):
            GameConfigUpdate(min_bet=Decimal("10"), max_bet=Decimal("5"))
        with pytest.raises(SchemaValidationError):
            GameConfigUpdate(house_edge_percent=Decimal("100"))
        with pytest.raises(SchemaValidationError):
            GameConfigUpdate(jackpot_contribution_rate=Decimal("1.5"))

    @pytest.mark.asyncio
    async def test_toggle(self, config_call):
        assert (await config_call("toggle", GameKind.HIGHER_LOWER)).enabled is False
        assert (await config_call("toggle", GameKind.HIGHER_LOWER)).enabled is True

    @pytest.mark.asyncio
    async def test_disable_and_enable_all(self, config_call):
        await config_call("toggle", GameKind.SCRATCH_CARD)

        assert await config_call("disable_all") == len(GameKind) - 1
        assert await config_call("disable_all") == 0
        assert await config_call("enable_all") == len(GameKind)

    def test_unknown_game_kind(self):
        with pytest.raises(ValidationError):
            coerce_game_kind("roulette")
