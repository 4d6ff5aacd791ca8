"""Game configuration store."""

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.config import get_settings
from rewards.logging_config import get_logger
from rewards.models.game import GameConfig, GameKind
from rewards.schemas.game import GameConfigUpdate
from rewards.utils.errors import ValidationError

logger = get_logger(__name__)

GAME_NAMES: dict[GameKind, str] = {
    GameKind.COIN_FLIP: "Coin Flip",
    GameKind.DICE_ROLL: "Dice Roll",
    GameKind.SPIN_WHEEL: "Spin the Wheel",
    GameKind.HIGHER_LOWER: "Higher or Lower",
    GameKind.SCRATCH_CARD: "Scratch Card",
    GameKind.DAILY_BONUS: "Daily Bonus",
}


def coerce_game_kind(game_kind: GameKind | str) -> GameKind:
    if isinstance(game_kind, GameKind):
        return game_kind
    try:
        return GameKind(game_kind)
    except ValueError as e:
        raise ValidationError(
            f"Unknown game type: {game_kind}", details={"gameKind": game_kind}
        ) from e


class GameConfigService:
    """Reads and updates per-game configuration.

    A missing row is created from the settings defaults the first time it
    is read, so a fresh database has every game available.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, game_kind: GameKind | str) -> GameConfig:
        game_kind = coerce_game_kind(game_kind)
        result = await self.session.execute(
            select(GameConfig).where(GameConfig.game_kind == game_kind)
        )
        config = result.scalar_one_or_none()
        if config is None:
            config = self._default(game_kind)
            self.session.add(config)
            await self.session.flush()
        return config

    def _default(self, game_kind: GameKind) -> GameConfig:
        settings = get_settings()
        return GameConfig(
            id=str(uuid4()),
            game_kind=game_kind,
            name=GAME_NAMES[game_kind],
            enabled=True,
            min_bet=settings.default_min_bet,
            max_bet=settings.default_max_bet,
            house_edge_percent=settings.default_house_edge_percent,
            jackpot_contribution_rate=settings.default_jackpot_contribution_rate,
            custom_config={},
            display_order=list(GameKind).index(game_kind),
        )

    async def list_configs(self) -> list[GameConfig]:
        """Every game config, creating missing rows."""
        configs = [await self.get(kind) for kind in GameKind]
        return sorted(configs, key=lambda c: c.display_order)

    async def update(self, game_kind: GameKind | str, changes: GameConfigUpdate) -> GameConfig:
        """Apply a partial update; the resulting min_bet must not exceed max_bet."""
        config = await self.get(game_kind)
        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(config, field, value)

        if config.min_bet > config.max_bet:
            raise ValidationError(
                "min_bet must not exceed max_bet",
                details={"minBet": str(config.min_bet), "maxBet": str(config.max_bet)},
            )
        await self.session.flush()

        logger.info(
            "game_config_updated",
            game_kind=config.game_kind.value,
            changes=list(changes.model_fields_set),
        )
        return config

    async def toggle(self, game_kind: GameKind | str) -> GameConfig:
        config = await self.get(game_kind)
        config.enabled = not config.enabled
        await self.session.flush()
        logger.info("game_config_toggled", game_kind=config.game_kind.value, enabled=config.enabled)
        return config

    async def set_all_enabled(self, enabled: bool) -> int:
        """Enable or disable every game. Returns the number of rows changed."""
        changed = 0
        for config in await self.list_configs():
            if config.enabled != enabled:
                config.enabled = enabled
                changed += 1
        await self.session.flush()
        return changed

    async def disable_all(self) -> int:
        return await self.set_all_enabled(False)

    async def enable_all(self) -> int:
        """Explicit operator action; nothing re-enables games automatically."""
        changed = await self.set_all_enabled(True)
        logger.info("games_enabled", changed=changed)
        return changed
