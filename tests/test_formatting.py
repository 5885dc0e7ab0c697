from datetime import datetime
from decimal import Decimal

import pytest

from procurement.services.formatting import format_datetime, parse_deadline, to_decimal, to_id
from procurement.services.selection import compute_total


def test_naive_deadline_is_read_in_local_zone():
    assert parse_deadline('2030-06-01T09:00:00', 'Africa/Nairobi') == datetime(2030, 6, 1, 6, 0, 0)


def test_zulu_deadline():
    assert parse_deadline('2030-06-01T09:00:00Z') == datetime(2030, 6, 1, 9, 0, 0)


@pytest.mark.parametrize('value', ['', '2030-13-01', 'tomorrow', 42])
def test_unparseable_deadline(value):
    with pytest.raises(ValueError):
        parse_deadline(value)


def test_format_datetime_marks_utc():
    assert format_datetime(datetime(2030, 6, 1, 9, 0)) == '2030-06-01T09:00:00Z'
    assert format_datetime(None) is None


@pytest.mark.parametrize('value, expected', [
    ('19.999', Decimal('20.00')),
    (0.1, Decimal('0.10')),
    (7, Decimal('7.00')),
])
def test_to_decimal(value, expected):
    assert to_decimal(value) == expected


@pytest.mark.parametrize('value', [
    None, True, 'NaN', 'Infinity', 'ten', [1],
    '1e30', '-1e40', '100000000',
])
def test_to_decimal_rejects(value):
    with pytest.raises(ValueError):
        to_decimal(value)


def test_to_id():
    assert to_id('12') == 12
    for bad in (None, 0, -3, 'x', 1.5, False):
        with pytest.raises(ValueError):
            to_id(bad)


def test_compute_total_rounds_half_up():
    assert compute_total(Decimal('0.125'), Decimal('1')) == Decimal('0.13')
    assert compute_total(Decimal('50.00'), Decimal('100')) == Decimal('5000.00')


def test_to_decimal_accepts_largest_column_value():
    assert to_decimal('99999999.99') == Decimal('99999999.99')
