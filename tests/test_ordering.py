"""
Tests for checkout pricing, allergen aggregation and prep-time estimates.
"""

from types import SimpleNamespace

import pytest

from qrdine.schemas import OrderItemCreate
from qrdine.services.ordering import (
    PricingError,
    build_allergen_summary,
    calculate_order_totals,
    estimate_prep_time,
    price_line_item,
)


def menu_item(**fields):
    defaults = {
        "id": 1,
        "name": "Burger",
        "price": 10.0,
        "category": "mains",
        "description": None,
        "allergens": ["gluten"],
        "customizations": [],
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


PIZZA = menu_item(
    id=7,
    name="Pizza",
    price=12.0,
    customizations=[
        {
            "id": "size", "name": "Size", "type": "radio", "required": True,
            "options": [{"name": "Regular", "price": 0.0}, {"name": "Large", "price": 4.0}],
        },
        {
            "id": "extras", "name": "Extras", "type": "checkbox", "max_selections": 2,
            "options": [{"name": "Olives", "price": 1.0}, {"name": "Basil", "price": 0.5}, {"name": "Burrata", "price": 3.0}],
        },
    ],
)


def line(item, quantity=1, **extra):
    return price_line_item(item, OrderItemCreate(menuItemId=item.id, quantity=quantity, **extra))


class TestPriceLineItem:
    """Line snapshots priced from the menu's own definitions."""

    def test_plain_item(self):
        """Without customizations the line total is price times quantity."""
        result = line(menu_item(), quantity=3)

        assert result["menu_item_id"] == 1
        assert result["name"] == "Burger"
        assert result["customization_total"] == 0.0
        assert result["line_total"] == 30.0
        assert result["allergens"] == ["gluten"]

    def test_option_prices_come_from_menu(self):
        """Selected option prices are looked up on the menu item."""
        result = line(
            PIZZA,
            quantity=2,
            selectedCustomizations=[
                {"customizationId": "size", "selectedOptions": ["Large"]},
                {"customizationId": "extras", "selectedOptions": ["Olives", "Basil"]},
            ],
        )

        assert result["customization_total"] == 5.5
        assert result["line_total"] == 35.0
        assert result["selected_customizations"][0] == {
            "customization_id": "size",
            "name": "Size",
            "options": [{"name": "Large", "price": 4.0}],
        }

    def test_unknown_customization_rejected(self):
        with pytest.raises(PricingError, match="Invalid customization"):
            line(
                PIZZA,
                selectedCustomizations=[
                    {"customizationId": "size", "selectedOptions": ["Regular"]},
                    {"customizationId": "crust", "selectedOptions": ["Thin"]},
                ],
            )

    def test_unknown_option_rejected(self):
        with pytest.raises(PricingError, match="Invalid option 'Huge'"):
            line(PIZZA, selectedCustomizations=[{"customizationId": "size", "selectedOptions": ["Huge"]}])

    def test_single_choice_allows_one_option(self):
        with pytest.raises(PricingError, match="only one option"):
            line(PIZZA, selectedCustomizations=[{"customizationId": "size", "selectedOptions": ["Regular", "Large"]}])

    def test_max_selections_enforced(self):
        with pytest.raises(PricingError, match="At most 2"):
            line(
                PIZZA,
                selectedCustomizations=[
                    {"customizationId": "size", "selectedOptions": ["Regular"]},
                    {"customizationId": "extras", "selectedOptions": ["Olives", "Basil", "Burrata"]},
                ],
            )

    def test_repeated_option_rejected(self):
        """Picking the same extra twice must not charge it twice."""
        with pytest.raises(PricingError, match="can be selected once"):
            line(
                PIZZA,
                selectedCustomizations=[
                    {"customizationId": "size", "selectedOptions": ["Regular"]},
                    {"customizationId": "extras", "selectedOptions": ["Olives", "Olives"]},
                ],
            )

    def test_required_customization_missing(self):
        with pytest.raises(PricingError, match="'Size' is required"):
            line(PIZZA)


class TestOrderTotals:
    def test_totals_with_tax(self):
        """$10 + $15 at 8% tax."""
        lines = [line(menu_item(id=1, price=10.0)), line(menu_item(id=2, price=15.0))]

        totals = calculate_order_totals(lines, 0.08)

        assert totals == {"subtotal": 25.0, "tax": 2.0, "tax_rate": 0.08, "total": 27.0}

    def test_total_matches_rounded_subtotal_with_tax(self):
        """total == round(subtotal * (1 + rate), 2) for awkward prices."""
        lines = [line(menu_item(price=3.33), quantity=3), line(menu_item(id=2, price=0.07))]

        totals = calculate_order_totals(lines, 0.0875)

        assert totals["subtotal"] == 10.06
        assert totals["total"] == round(10.06 * 1.0875, 2)

    def test_zero_tax(self):
        totals = calculate_order_totals([line(menu_item(price=9.99), quantity=2)], 0.0)
        assert totals["tax"] == 0.0
        assert totals["total"] == totals["subtotal"] == 19.98


class TestAllergenSummary:
    def test_no_preferences(self):
        summary = build_allergen_summary([line(menu_item())])

        assert summary["has_allergen_concerns"] is False
        assert summary["avoided_allergens"] == []
        assert summary["special_instructions_count"] == 0

    def test_union_across_lines(self):
        """Allergens and diets from every line are merged, normalized and sorted."""
        lines = [
            line(menu_item(id=1, name="Burger"), allergenPreferences={"avoidAllergens": ["Nuts", "dairy"]}),
            line(
                menu_item(id=2, name="Salad"),
                allergenPreferences={"avoidAllergens": ["dairy"], "dietaryPreferences": ["Vegan"]},
            ),
            line(menu_item(id=3, name="Fries")),
        ]

        summary = build_allergen_summary(lines)

        assert summary["avoided_allergens"] == ["dairy", "nuts"]
        assert summary["dietary_preferences"] == ["vegan"]
        assert summary["affected_items"] == ["Burger", "Salad"]
        assert summary["has_allergen_concerns"] is True

    def test_instructions_are_counted(self):
        """Order-level and line-level instructions each count once."""
        lines = [line(menu_item(), specialInstructions="No onions")]

        summary = build_allergen_summary(lines, "Birthday candle please")

        assert summary["special_instructions_count"] == 2
        assert summary["has_allergen_concerns"] is True

    def test_blank_instructions_ignored(self):
        summary = build_allergen_summary([line(menu_item())], "   ")
        assert summary["special_instructions_count"] == 0


class TestPrepTime:
    def test_small_order_hits_floor(self):
        lines = [line(menu_item())]
        assert estimate_prep_time(lines, build_allergen_summary(lines)) == 15

    def test_heuristic(self):
        """10 + 2*5 units + 1*5 options (Large on each pizza) + 5 allergen + 2*1 instruction."""
        lines = [
            line(
                PIZZA,
                quantity=5,
                selectedCustomizations=[
                    {"customizationId": "size", "selectedOptions": ["Large"]},
                ],
                allergenPreferences={"avoidAllergens": ["dairy"]},
            )
        ]
        summary = build_allergen_summary(lines, "Extra napkins")

        assert estimate_prep_time(lines, summary) == 10 + 10 + 5 + 5 + 2

    def test_large_order_hits_ceiling(self):
        lines = [line(menu_item(), quantity=40)]
        assert estimate_prep_time(lines, build_allergen_summary(lines)) == 60
