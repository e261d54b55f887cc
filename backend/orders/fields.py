from django.db import models

from .line_items import LineItem, decode_line_items, encode_line_items


class LineItemsField(models.JSONField):
    """JSON column holding a list of LineItem values."""

    description = "Order line items"

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('default', list)
        super().__init__(*args, **kwargs)

    def from_db_value(self, value, expression, connection):
        value = super().from_db_value(value, expression, connection)
        if value is None:
            return []
        return decode_line_items(value)

    def to_python(self, value):
        if isinstance(value, list) and all(isinstance(item, LineItem) for item in value):
            return value
        if isinstance(value, list):
            return decode_line_items(value)
        return value

    def get_prep_value(self, value):
        if isinstance(value, (list, tuple)):
            value = encode_line_items(value)
        return super().get_prep_value(value)

    def value_to_string(self, obj):
        return encode_line_items(self.value_from_object(obj))
