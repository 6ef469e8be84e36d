import os
import django
from django.apps import apps

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

# Only initialize once
if not apps.ready:
    django.setup()

import pytest
from django.contrib.auth import get_user_model

from tests.factories import ProductFactory, StoreFactory


@pytest.fixture
def store(db):
    return StoreFactory(name="성수 편집숍", commission_rate=25)


@pytest.fixture
def product(db):
    return ProductFactory(name="Ceramic Mug", barcode="8801")


@pytest.fixture
def operator(db, client):
    user = get_user_model().objects.create_user(username="operator", password="pw")
    client.force_login(user)
    return user
