"""Schemas for API requests and responses."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


class HealthStatusSchema(Schema):
    status = fields.String(required=True)
    app = fields.String()


class ErrorDetailSchema(Schema):
    code = fields.String(required=True)
    message = fields.String(required=True)
    request_id = fields.String(allow_none=True)


class SnapshotMetadataSchema(Schema):
    base = fields.String(required=True)
    source = fields.String(required=True)
    fetched_at = fields.String(required=True)
    is_estimated = fields.Boolean(required=True)
    age_seconds = fields.Float(required=True)
    currencies = fields.Integer(required=True)


class FXHealthSchema(Schema):
    status = fields.String(required=True)
    upstream = fields.Boolean(required=True)
    enabled = fields.Boolean(required=True)
    configured = fields.Boolean(required=True)
    circuit_open = fields.Boolean(required=True)
    consecutive_auth_failures = fields.Integer(required=True)
    last_error = fields.Nested(ErrorDetailSchema, allow_none=True)
    memory_cache_entries = fields.Integer(required=True)
    disk_cache_entries = fields.Integer(required=True)
    snapshot = fields.Nested(SnapshotMetadataSchema, allow_none=True)


class CurrencyFilterSchema(Schema):
    currencies = fields.String(
        load_default=None,
        metadata={"description": "Comma separated ISO codes, e.g. EUR,DOP"},
    )


class SnapshotSchema(Schema):
    base = fields.String(required=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)
    fetched_at = fields.String(required=True)
    is_estimated = fields.Boolean(required=True)
    source = fields.String(required=True)


class DateRatesSchema(Schema):
    base = fields.String(required=True)
    date_used = fields.String(allow_none=True)
    requested_date = fields.String(allow_none=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)
    is_estimated = fields.Boolean(allow_none=True)
    provider = fields.String(allow_none=True)
    source = fields.String(allow_none=True)


class TimeframeQuerySchema(CurrencyFilterSchema):
    start = fields.Date(required=True)
    end = fields.Date(required=True)

    @validates_schema
    def _check_range(self, data, **_kwargs):
        if data["start"] > data["end"]:
            raise ValidationError("start must not be after end.", field_name="start")


class TimeframeRatesSchema(Schema):
    base = fields.String(required=True)
    start = fields.String(required=True)
    end = fields.String(required=True)
    rates_by_date = fields.Dict(
        keys=fields.String(),
        values=fields.Dict(keys=fields.String(), values=fields.Float()),
        required=True,
    )
    provider = fields.String(allow_none=True)
    source = fields.String(allow_none=True)


class SymbolsSchema(Schema):
    symbols = fields.Dict(keys=fields.String(), values=fields.String(), required=True)


class LocalConvertQuerySchema(Schema):
    from_currency = fields.String(required=True, data_key="from")
    to_currency = fields.String(required=True, data_key="to")
    amount = fields.Float(required=True, validate=validate.Range(min=0))


class ConvertQuerySchema(LocalConvertQuerySchema):
    date = fields.Date(load_default=None)


class ConversionResultSchema(Schema):
    original_amount = fields.Float(required=True)
    converted_amount = fields.Float(required=True)
    rate_used = fields.Float(required=True)
    from_currency = fields.String(required=True, data_key="from")
    to_currency = fields.String(required=True, data_key="to")
    as_of = fields.String(required=True)
    source = fields.String(required=True)
    is_estimated = fields.Boolean(required=True)


class CircuitStateSchema(Schema):
    circuit_open = fields.Boolean(required=True)
    consecutive_auth_failures = fields.Integer(required=True)
    last_error = fields.Nested(ErrorDetailSchema, allow_none=True)


class CacheStatsSchema(Schema):
    memory_entries = fields.Integer(required=True)
    disk_entries = fields.Integer(required=True)
    removed = fields.Integer(allow_none=True)
