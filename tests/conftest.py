import json

import pytest
from fastapi.testclient import TestClient

from recipe_forge.app.core.config import get_settings
from recipe_forge.app.main import create_app


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def llm_settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "llm_base_url", "http://llm-proxy")
    monkeypatch.setattr(settings, "llm_api_key", "test-key")
    return settings


@pytest.fixture
def canonical_recipe():
    return {
        "schemaVersion": "1.1.0",
        "titleZh": "麻婆豆腐",
        "titleEn": "Mapo Tofu",
        "summary": {
            "oneLine": "麻辣鲜香的川味家常菜",
            "healingTone": "一口热辣，把疲惫都赶走。",
            "flavorTags": ["麻", "辣"],
            "difficulty": "medium",
            "timeTotalMin": 25,
            "timeActiveMin": 15,
            "servings": 2,
        },
        "story": {
            "title": "陈麻婆的小店",
            "content": "相传清代成都北郊有位陈姓老妇，擅长烧豆腐，这道菜因她得名。",
            "tags": ["川菜", "成都"],
        },
        "ingredients": [
            {
                "section": "主料",
                "items": [
                    {"name": "嫩豆腐", "iconKey": "bean", "amount": 400, "unit": "克"},
                    {"name": "牛肉末", "iconKey": "meat", "amount": 100, "unit": "克", "notes": "猪肉末也可"},
                ],
            },
            {
                "section": "调料",
                "items": [
                    {"name": "郫县豆瓣", "iconKey": "sauce", "amount": 1.5, "unit": "勺"},
                    {"name": "花椒粉", "iconKey": "spice", "amount": 1, "unit": "适量"},
                ],
            },
        ],
        "steps": [
            {
                "id": "step01",
                "title": "豆腐焯水",
                "action": "豆腐切成2厘米见方的块，放入加盐的沸水中焯1分钟，捞出沥干。",
                "timerSec": 60,
                "visualCue": "豆腐表面微微发紧",
                "heat": "medium",
            },
            {
                "id": "step02",
                "title": "炒香肉末",
                "action": "热锅凉油，下牛肉末炒至酥香，再加入豆瓣炒出红油。",
                "timerSec": 180,
                "failPoint": "豆瓣容易糊，火不要太大",
                "heat": "medium-high",
            },
        ],
        "styleGuide": {"theme": "家常温馨", "lighting": "暖色调"},
        "imageShots": [
            {"key": "hero", "imagePrompt": "mapo tofu, food photography", "ratio": "16:9"},
            {"key": "step01", "imagePrompt": "blanching tofu cubes", "ratio": "4:3"},
            {"key": "step02", "imagePrompt": "frying minced beef in chili oil", "ratio": "4:3"},
        ],
    }


@pytest.fixture
def canonical_text(canonical_recipe):
    return json.dumps(canonical_recipe, ensure_ascii=False, indent=2)
