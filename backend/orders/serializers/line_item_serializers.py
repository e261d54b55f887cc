from rest_framework import serializers

from orders.line_items import Addon, LineItem, encode_line_items


class AddonInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)


class LineItemInputSerializer(serializers.Serializer):
    """One item as ordering clients send it: {name, quantity, price, selectedAddons}"""
    name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    selectedAddons = AddonInputSerializer(many=True, required=False, default=list)

    def to_line_item(self, data=None) -> LineItem:
        data = data if data is not None else self.validated_data
        return LineItem(
            name=data['name'],
            quantity=data['quantity'],
            unit_price=data['price'],
            addons=tuple(Addon(name=addon['name'], price=addon['price']) for addon in data.get('selectedAddons', [])),
        )


class LineItemsField(serializers.Field):
    """Read-only rendering of Order.line_items with per-line totals."""

    def __init__(self, **kwargs):
        kwargs['read_only'] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        encoded = encode_line_items(value)
        for raw, item in zip(encoded, value):
            raw['lineTotal'] = str(item.line_total)
        return encoded
