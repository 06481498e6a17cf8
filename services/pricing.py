def calculate_totals(merchant, items_total):
    # Delivery
    delivery = merchant.delivery_charge or 0

    if merchant.free_delivery_limit is not None and items_total >= merchant.free_delivery_limit:
        delivery = 0

    final_total = round(items_total + delivery, 2)

    return {
        "items_total": round(items_total, 2),
        "delivery": delivery,
        "final_total": final_total
    }


def price_cart(merchant, lines):
    """Price `[(product, quantity), ...]` against current catalog prices."""
    items_total = sum(product.price * quantity for product, quantity in lines)
    return calculate_totals(merchant, items_total)
