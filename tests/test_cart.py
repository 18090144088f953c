"""
Tests for the cart accumulator. No database involved.
"""

import pytest

from gourmetflow.cart import Cart, SelectedVariation, VariationSelectionRequired
from gourmetflow.models import ItemVariation, MenuItem


@pytest.fixture
def burger():
    return MenuItem(id=1, name="X-Burger", price=20.0)


@pytest.fixture
def pizza():
    return MenuItem(id=2, name="Pizza", price=40.0, promotional_price=35.0)


@pytest.fixture
def pizza_options():
    return [
        ItemVariation(id=10, menu_item_id=2, name="Grande", type="size", price_adjustment=10.0),
        ItemVariation(id=11, menu_item_id=2, name="Borda", type="border", price_adjustment=5.0),
    ]


class TestCartSubtotal:
    def test_empty_cart_has_zero_subtotal(self):
        cart = Cart()

        assert cart.is_empty()
        assert cart.subtotal == 0

    def test_subtotal_is_sum_of_final_price_times_quantity(self, burger, pizza, pizza_options):
        cart = Cart()
        cart.add_item(burger, quantity=2)
        cart.add_item(pizza, [pizza_options[0]], available_variations=pizza_options)

        # 2 x 20.00 + 1 x (35.00 + 10.00)
        assert cart.subtotal == 85.0
        assert cart.item_count == 3

    def test_promotional_price_replaces_price(self, pizza, pizza_options):
        cart = Cart()
        line = cart.add_item(pizza, [], available_variations=pizza_options)

        assert line.price == 35.0
        assert line.final_price == 35.0

    def test_variation_adjustments_are_added_to_unit_price(self, pizza, pizza_options):
        cart = Cart()
        line = cart.add_item(pizza, pizza_options, available_variations=pizza_options)

        assert line.final_price == 50.0
        assert line.customizations_text == "Grande, Borda"
        assert line.display_name == "Pizza (Grande, Borda)"


class TestCartLines:
    def test_same_item_and_options_increment_quantity(self, burger):
        cart = Cart()
        cart.add_item(burger)
        cart.add_item(burger)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2

    def test_merged_line_keeps_notes_from_both_additions(self, burger):
        cart = Cart()
        cart.add_item(burger, notes="sem cebola")
        cart.add_item(burger, notes="bem passado")
        cart.add_item(burger, notes="sem cebola")
        cart.add_item(burger)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 4
        assert cart.lines[0].notes == "sem cebola; bem passado"

    def test_note_on_second_addition_only(self, burger):
        cart = Cart()
        cart.add_item(burger)
        cart.add_item(burger, notes="  sem picles ")

        assert cart.lines[0].notes == "sem picles"

    def test_different_options_create_separate_lines(self, pizza, pizza_options):
        cart = Cart()
        cart.add_item(pizza, [pizza_options[0]], available_variations=pizza_options)
        cart.add_item(pizza, [pizza_options[1]], available_variations=pizza_options)

        assert len(cart.lines) == 2

    def test_option_order_does_not_change_line_identity(self, pizza, pizza_options):
        cart = Cart()
        cart.add_item(pizza, pizza_options, available_variations=pizza_options)
        cart.add_item(pizza, list(reversed(pizza_options)), available_variations=pizza_options)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2

    def test_item_with_options_requires_a_selection(self, pizza, pizza_options):
        cart = Cart()

        with pytest.raises(VariationSelectionRequired):
            cart.add_item(pizza, available_variations=pizza_options)
        assert cart.is_empty()

    def test_inactive_options_do_not_require_a_selection(self, pizza):
        cart = Cart()
        retired = [ItemVariation(id=12, menu_item_id=2, name="Velha", is_active=False)]

        cart.add_item(pizza, available_variations=retired)

        assert len(cart.lines) == 1

    def test_accepts_already_selected_variations(self, burger):
        cart = Cart()
        bacon = SelectedVariation(id=5, name="Bacon", type="extra", price_adjustment=4.0)

        line = cart.add_item(burger, [bacon])

        assert line.final_price == 24.0

    def test_quantity_must_be_positive(self, burger):
        with pytest.raises(ValueError):
            Cart().add_item(burger, quantity=0)


class TestCartQuantity:
    def test_update_quantity_changes_line(self, burger):
        cart = Cart()
        line = cart.add_item(burger)

        cart.update_quantity(line.line_id, 3)

        assert cart.lines[0].quantity == 4
        assert cart.subtotal == 80.0

    def test_line_is_removed_when_quantity_reaches_zero(self, burger, pizza, pizza_options):
        cart = Cart()
        burger_line = cart.add_item(burger, quantity=2)
        cart.add_item(pizza, [], available_variations=pizza_options)

        result = cart.update_quantity(burger_line.line_id, -2)

        assert result is None
        assert [line.name for line in cart.lines] == ["Pizza"]
        assert cart.subtotal == 35.0

    def test_quantity_is_clamped_at_zero(self, burger):
        cart = Cart()
        line = cart.add_item(burger)

        cart.update_quantity(line.line_id, -10)

        assert cart.is_empty()

    def test_unknown_line_is_ignored(self, burger):
        cart = Cart()
        cart.add_item(burger)

        assert cart.update_quantity("missing", 1) is None
        assert cart.lines[0].quantity == 1

    def test_remove_and_clear(self, burger, pizza, pizza_options):
        cart = Cart()
        line = cart.add_item(burger)
        cart.add_item(pizza, [], available_variations=pizza_options)

        cart.remove(line.line_id)
        assert len(cart.lines) == 1

        cart.clear()
        assert cart.is_empty()

    def test_cart_state_serializes(self, burger):
        cart = Cart()
        cart.add_item(burger, quantity=2, notes="sem cebola")

        restored = Cart.model_validate(cart.model_dump())

        assert restored.subtotal == 40.0
        assert restored.lines[0].notes == "sem cebola"
