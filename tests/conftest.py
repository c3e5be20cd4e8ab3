import logging

import pytest

from idscan.images.models import SourceImage
from idscan.logging.logger import Log
from tests.helpers import make_source_image


@pytest.fixture(autouse=True)
def _debug_logging() -> None:
    Log._logger.setLevel(logging.DEBUG)


@pytest.fixture
def id_card_image() -> SourceImage:
    return make_source_image(1200, 1600)


@pytest.fixture
def low_res_image() -> SourceImage:
    return make_source_image(400, 500, file_name="small.jpg")


@pytest.fixture
def broken_image() -> SourceImage:
    return SourceImage(data=b"definitely not an image", file_name="broken.jpg")
