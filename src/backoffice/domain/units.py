"""Sale unit conversion for pharmacy stock."""

from backoffice.domain.entities import ATOMIC_UNIT, SaleResolution, StockItem
from backoffice.domain.errors import IncompatibleUnitError, MalformedRecordError


def same_unit(left: str, right: str) -> bool:
    """Compare unit names ignoring case and surrounding whitespace."""
    return left.strip().casefold() == right.strip().casefold()


def is_atomic(unit: str) -> bool:
    return same_unit(unit, ATOMIC_UNIT)


class UnitConverter:
    """Relates a requested sale unit to the unit an item is stocked in.

    An item's ``sell_price`` is the price of one storage unit. Quantities on
    hand are counted in atomic units, so every sale resolves to a whole
    number of atomic units to deduct and a price per requested unit.
    """

    def resolve_sale(self, item: StockItem, requested_qty: int, requested_unit: str) -> SaleResolution:
        """Resolve a requested quantity into an atomic deduction and unit price.

        Args:
            item: Stock item being sold
            requested_qty: Number of requested units (positive integer)
            requested_unit: Unit the customer is buying in

        Returns:
            SaleResolution with the atomic deduction and price per requested unit

        Raises:
            MalformedRecordError: If the quantity is not a positive integer
            IncompatibleUnitError: If the units cannot be related
        """
        if isinstance(requested_qty, bool) or not isinstance(requested_qty, int) or requested_qty <= 0:
            raise MalformedRecordError(
                f"Sale quantity must be a positive whole number, got {requested_qty!r}",
                field="quantity",
            )
        per_unit = item.items_per_storage_unit

        if same_unit(requested_unit, item.storage_unit):
            deduction = requested_qty if is_atomic(item.storage_unit) else requested_qty * per_unit
            return SaleResolution(atomic_deduction=deduction, unit_price=item.sell_price)

        if is_atomic(requested_unit):
            # Single items broken out of a pack
            return SaleResolution(
                atomic_deduction=requested_qty,
                unit_price=item.sell_price / per_unit,
            )

        if is_atomic(item.storage_unit):
            # Whole packs sold from loose stock
            return SaleResolution(
                atomic_deduction=requested_qty * per_unit,
                unit_price=item.sell_price * per_unit,
            )

        raise IncompatibleUnitError(item.id, requested_unit, item.storage_unit)

    def to_atomic(self, item: StockItem, quantity: int, unit: str) -> int:
        """Convert a quantity in ``unit`` into atomic units for this item.

        Used for restocks entered as whole boxes.

        Raises:
            IncompatibleUnitError: If the units cannot be related
        """
        if is_atomic(unit):
            return quantity
        if same_unit(unit, item.storage_unit) or is_atomic(item.storage_unit):
            return quantity * item.items_per_storage_unit
        raise IncompatibleUnitError(item.id, unit, item.storage_unit)
