from dataclasses import dataclass, field
from typing import Dict

from scopewatch import Tracker


@dataclass
class Cart:
    items: Dict[str, int] = field(default_factory=dict)
    price_per_item: float = 10.0

    @property
    def total(self) -> float:
        return sum(self.items.values()) * self.price_per_item


def update_ui(old: Cart, new: Cart):
    print(f">>> Cart Total: ${old.total:.2f} -> ${new.total:.2f}")


cart = Tracker(Cart(items={"book": 1}), name="cart")
cart.subscribe(update_ui)  # Update the UI whenever the cart changes

print("=" * 50)

# Whatever happens inside the with-block, the UI hears about the net result once.
with cart.begin_mutation() as handle:
    handle.items["book"] += 1
    handle.price_per_item = 15.0

# Adding and removing the same item is not a change at all.
with cart.begin_mutation() as handle:
    handle.items["pen"] = 1
    del handle.items["pen"]

# ==================================================
# >>> Cart Total: $10.00 -> $30.00
