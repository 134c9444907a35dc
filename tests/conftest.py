"""Pytest fixtures and configuration."""

import pytest

from normalization_backend.app import create_app


@pytest.fixture
def app():
    """Flask app with a small attribute ceiling."""
    return create_app({"TESTING": True, "MAX_ATTRIBUTES": 12})


@pytest.fixture
def client(app):
    """Test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def shop_ddl():
    return """
CREATE TABLE customers (
  customer_id INT PRIMARY KEY,
  name VARCHAR(50) NOT NULL,
  city VARCHAR(30)
);

CREATE TABLE orders (
  order_id INT,
  customer_id INT,
  total DECIMAL(10,2),
  PRIMARY KEY (order_id),
  FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
);
"""
