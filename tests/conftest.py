import pytest

from config import AppConfig


@pytest.fixture
def offline_config(tmp_path):
    """Config with no credentials at all, logging into a temp dir."""
    return AppConfig.from_env({"LOG_DIR": str(tmp_path / "logs")})


@pytest.fixture
def sample_dataset():
    return {
        "Sales": [
            {"region": "North", "product": "Widget", "units": 120, "note": "great quarter"},
            {"region": "South", "product": "Gadget", "units": 80, "note": "poor weather hurt sales"},
            {"region": "East", "product": "Widget", "units": 95},
        ],
        "Feedback": [
            {"customer": "Acme", "comment": "Excellent support and good pricing"},
            {"customer": "Globex", "comment": "Delivery was terrible"},
        ],
        "Empty": [],
    }
