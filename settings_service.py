"""
Restaurant settings: one document per restaurant.

Until an admin saves settings, values fall back to the process configuration
(time zone, loyalty toggle and ratio).
"""
import logging

from pydantic import ValidationError as SchemaError

from config import get_settings
from errors import ValidationError
from schemas import RESTAURANT_SETTINGS, RestaurantSettings

logger = logging.getLogger(__name__)


def _defaults() -> RestaurantSettings:
    settings = get_settings()
    return RestaurantSettings(
        timezone=settings.timezone,
        enable_loyalty_points=settings.enable_loyalty_points,
        loyalty_points_ratio=settings.loyalty_points_ratio,
    )


def get_restaurant_settings(store) -> RestaurantSettings:
    docs = store.get_all(RESTAURANT_SETTINGS, limit=1)
    return RestaurantSettings(**docs[0]) if docs else _defaults()


def update_restaurant_settings(store, changes: dict) -> RestaurantSettings:
    current = get_restaurant_settings(store)
    changes = {k: v for k, v in changes.items() if v is not None}
    try:
        updated = RestaurantSettings.model_validate({**current.model_dump(), **changes})
    except SchemaError as exc:
        raise ValidationError(f"Invalid settings: {exc.errors()[0]['msg']}") from exc
    if current.id:
        store.update(RESTAURANT_SETTINGS, current.id, updated.model_dump(exclude={"id"}))
    else:
        updated.id = store.create(RESTAURANT_SETTINGS, updated)
    logger.info("Restaurant settings updated: %s", ", ".join(sorted(changes)) or "no changes")
    return updated


def local_timezone(store):
    """tzinfo for the restaurant's local calendar days."""
    return get_restaurant_settings(store).tzinfo()
