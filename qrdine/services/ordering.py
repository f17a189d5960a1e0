"""
Order Pricing & Kitchen Estimates

Pure functions used at checkout:
    - price_line_item: snapshot a menu item with its selected customizations
    - calculate_order_totals: subtotal / tax / total
    - estimate_prep_time: kitchen heuristic, clamped to [15, 60] minutes
    - build_allergen_summary: order-wide allergen and dietary aggregate

Nothing here touches the database; callers pass in menu item rows and
validated request schemas.
"""

import logging
from typing import Any, Iterable, Optional

from qrdine.schemas import AllergenPreferences, OrderItemCreate

logger = logging.getLogger(__name__)

# Prep-time heuristic (minutes)
PREP_TIME_MIN = 15
PREP_TIME_MAX = 60
PREP_BASE = 10
PREP_PER_UNIT = 2
PREP_PER_OPTION = 1
PREP_ALLERGEN_OVERHEAD = 5
PREP_PER_INSTRUCTION = 2


class PricingError(ValueError):
    """A line item references a customization the menu item does not offer."""


def _money(value: float) -> float:
    return round(value, 2)


def price_line_item(menu_item: Any, item: OrderItemCreate) -> dict[str, Any]:
    """
    Build the denormalized line snapshot for one ordered menu item.

    Option prices come from the menu item's own customization definitions,
    never from the request.

    Raises:
        PricingError: unknown customization/option, a single-choice
            customization with several options, a repeated option, too many
            selections, or a missing required customization.
    """
    definitions = {c["id"]: c for c in (menu_item.customizations or [])}
    selected_ids = set()
    snapshots = []
    customization_total = 0.0

    for selection in item.selected_customizations:
        definition = definitions.get(selection.customization_id)
        if definition is None:
            raise PricingError(
                f"Invalid customization '{selection.customization_id}' for {menu_item.name}"
            )
        if selection.customization_id in selected_ids:
            raise PricingError(
                f"Customization '{definition['name']}' selected twice for {menu_item.name}"
            )
        selected_ids.add(selection.customization_id)

        if definition.get("type", "radio") in ("radio", "select") and len(selection.selected_options) > 1:
            raise PricingError(f"Choose only one option for '{definition['name']}'")

        max_selections = definition.get("max_selections")
        if max_selections and len(selection.selected_options) > max_selections:
            raise PricingError(
                f"At most {max_selections} options allowed for '{definition['name']}'"
            )

        if len(set(selection.selected_options)) != len(selection.selected_options):
            raise PricingError(f"Each option of '{definition['name']}' can be selected once")

        options = {o["name"]: float(o.get("price", 0.0)) for o in definition.get("options", [])}
        priced = []
        for option_name in selection.selected_options:
            if option_name not in options:
                raise PricingError(
                    f"Invalid option '{option_name}' for '{definition['name']}'"
                )
            priced.append({"name": option_name, "price": options[option_name]})
            customization_total += options[option_name]

        snapshots.append({
            "customization_id": selection.customization_id,
            "name": definition["name"],
            "options": priced,
        })

    for definition in definitions.values():
        if definition.get("required") and definition["id"] not in selected_ids:
            raise PricingError(f"'{definition['name']}' is required for {menu_item.name}")

    unit_price = float(menu_item.price)
    line_total = (unit_price + customization_total) * item.quantity

    return {
        "menu_item_id": menu_item.id,
        "name": menu_item.name,
        "price": unit_price,
        "quantity": item.quantity,
        "category": menu_item.category,
        "description": menu_item.description,
        "allergens": list(menu_item.allergens or []),
        "selected_customizations": snapshots,
        "customization_total": _money(customization_total),
        "line_total": _money(line_total),
        "customizations": list(item.customizations),
        "allergen_preferences": (
            item.allergen_preferences.model_dump() if item.allergen_preferences else None
        ),
        "special_instructions": item.special_instructions,
    }


def calculate_order_totals(lines: Iterable[dict[str, Any]], tax_rate: float) -> dict[str, float]:
    """
    Calculate order subtotal, tax, and total.

    total is computed from the unrounded subtotal so that
    total == round(subtotal * (1 + tax_rate), 2) holds exactly.
    """
    raw_subtotal = sum(
        (line["price"] + line["customization_total"]) * line["quantity"]
        for line in lines
    )
    return {
        "subtotal": _money(raw_subtotal),
        "tax": _money(raw_subtotal * tax_rate),
        "tax_rate": tax_rate,
        "total": _money(raw_subtotal * (1 + tax_rate)),
    }


def _preferences(line: dict[str, Any]) -> Optional[AllergenPreferences]:
    prefs = line.get("allergen_preferences")
    if not prefs:
        return None
    return AllergenPreferences.model_validate(prefs)


def build_allergen_summary(
    lines: list[dict[str, Any]],
    order_instructions: Optional[str] = None,
) -> dict[str, Any]:
    """
    Aggregate allergen avoidance and dietary preferences across all lines.

    Computed once at checkout and stored on the order; never recomputed.
    """
    avoided: set[str] = set()
    dietary: set[str] = set()
    instruction_count = 1 if order_instructions and order_instructions.strip() else 0
    affected = []

    for line in lines:
        prefs = _preferences(line)
        line_flagged = False
        if prefs:
            line_avoid = {a.strip().lower() for a in prefs.avoid_allergens if a.strip()}
            line_diet = {d.strip().lower() for d in prefs.dietary_preferences if d.strip()}
            avoided |= line_avoid
            dietary |= line_diet
            if prefs.special_instructions and prefs.special_instructions.strip():
                instruction_count += 1
                line_flagged = True
            line_flagged = line_flagged or bool(line_avoid or line_diet)
        if line.get("special_instructions") and line["special_instructions"].strip():
            instruction_count += 1
        if line_flagged:
            affected.append(line["name"])

    has_concerns = bool(avoided or dietary or instruction_count)

    return {
        "avoided_allergens": sorted(avoided),
        "dietary_preferences": sorted(dietary),
        "special_instructions_count": instruction_count,
        "has_allergen_concerns": has_concerns,
        "affected_items": affected,
    }


def estimate_prep_time(lines: list[dict[str, Any]], allergen_summary: dict[str, Any]) -> int:
    """
    Heuristic kitchen time in minutes, always within [15, 60].

    10 base + 2 per unit ordered + 1 per selected customization option
    + 5 when any allergen is avoided + 2 per special instruction.
    """
    units = sum(line["quantity"] for line in lines)
    options = sum(
        len(snapshot["options"]) * line["quantity"]
        for line in lines
        for snapshot in line.get("selected_customizations", [])
    )
    minutes = PREP_BASE + PREP_PER_UNIT * units + PREP_PER_OPTION * options
    if allergen_summary.get("avoided_allergens"):
        minutes += PREP_ALLERGEN_OVERHEAD
    minutes += PREP_PER_INSTRUCTION * allergen_summary.get("special_instructions_count", 0)

    return max(PREP_TIME_MIN, min(PREP_TIME_MAX, minutes))
