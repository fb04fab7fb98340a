"""
Fixtures for SQLite-specific integration tests.
"""
import pandas as pd
import pytest


@pytest.fixture
def people_frame():
    """Ten valid rows for the people table, with a column the table lacks
    unless it is excluded."""
    def make(count=10, start_id=1):
        ids = range(start_id, start_id + count)
        return pd.DataFrame({
            'id': list(ids),
            'name': [f'Person {i}' for i in ids],
            'age': [20 + i % 50 for i in ids],
            'CreatedAt': pd.Timestamp('2024-01-01'),
        })

    return make
