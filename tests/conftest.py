import pytest

from tests.helpers import build_stack, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def stack(settings):
    return build_stack(settings)
