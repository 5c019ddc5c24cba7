import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from recipe_forge.app.core.config import get_settings
from recipe_forge.app.schemas.generation import BatchGenerationResult, BatchRecipeOutcome
from recipe_forge.app.services.llm_repair.models import RecipeParseResult, RepairFailure
from recipe_forge.app.services.recipe_pipeline import parse_recipe_output

logger = logging.getLogger(__name__)

RECIPE_SCHEMA_HINT = """{
  "schemaVersion": "1.1.0",
  "titleZh": "菜名（中文）",
  "titleEn": "Dish Name（英文，可选）",
  "summary": {
    "oneLine": "一句话描述（15字以内）",
    "healingTone": "治愈系文案（30字以内）",
    "difficulty": "easy | medium | hard",
    "timeTotalMin": 总耗时分钟数,
    "timeActiveMin": 操作时间分钟数,
    "servings": 人数
  },
  "story": {"title": "文化故事标题", "content": "200-300字的文化故事", "tags": ["标签"]},
  "ingredients": [
    {
      "section": "主料",
      "items": [
        {
          "name": "食材名称",
          "iconKey": "meat | veg | fruit | seafood | grain | bean | dairy | egg | spice | sauce | oil | other",
          "amount": 数字（用小数0.5，不要写1/2）,
          "unit": "克 | 毫升 | 个 | 片 | 勺 | 适量",
          "notes": "备注（可选）"
        }
      ]
    }
  ],
  "steps": [
    {
      "id": "step01",
      "title": "步骤标题（5-8字）",
      "action": "详细操作描述",
      "speechText": "语音朗读文本",
      "timerSec": 计时秒数,
      "visualCue": "如何判断完成",
      "failPoint": "常见失败点",
      "photoBrief": "配图说明"
    }
  ],
  "styleGuide": {"theme": "主题", "lighting": "光线", "composition": "构图", "aesthetic": "美学"},
  "imageShots": [
    {"key": "hero", "imagePrompt": "English food photography prompt", "ratio": "16:9 | 4:3 | 3:2"},
    {"key": "step01", "imagePrompt": "English close-up of the step action", "ratio": "4:3"}
  ]
}"""


def build_recipe_prompt(
    dish_name: str,
    location: Optional[str] = None,
    cuisine: Optional[str] = None,
    main_ingredients: Optional[Sequence[str]] = None,
) -> str:
    context: List[str] = []
    if location:
        context.append(f"地点：{location}")
    if cuisine:
        context.append(f"菜系：{cuisine}")
    ingredients = [item.strip() for item in main_ingredients or [] if item and item.strip()]
    if ingredients:
        context.append(f"主要食材：{'、'.join(ingredients)}")
    context_block = "\n".join(context) + "\n" if context else ""
    return (
        f"你是一位美食文化研究者和菜谱编写专家。请为\"{dish_name}\"生成一份完整的菜谱数据，严格遵循下面的JSON结构。\n\n"
        f"{context_block}"
        "要求：\n"
        "1. 只输出纯JSON，不要markdown代码块\n"
        "2. JSON中不要注释，不要末尾多余的逗号\n"
        "3. 字符串中的引号用反斜杠转义\n"
        "4. healingTone 文案温暖、细腻\n"
        "5. 步骤清晰，包含视觉检查和失败点提示\n"
        "6. 数量只能写“适量/少许”时，使用 amount=1，unit=\"适量\"或\"少许\"\n"
        "7. imageShots 的 imagePrompt 用英文书写，步骤图的 key 与 steps 的 id 一致\n\n"
        f"JSON结构：\n{RECIPE_SCHEMA_HINT}\n\n"
        f"现在请为\"{dish_name}\"输出完整的菜谱JSON："
    )


def _headers() -> Dict[str, str]:
    settings = get_settings()
    headers = {"Content-Type": "application/json"}
    if settings.llm_api_key:
        headers["Authorization"] = f"Bearer {settings.llm_api_key}"
    return headers


def _transport_failure(message: str, raw_text: str = "") -> RecipeParseResult:
    return RecipeParseResult(
        success=False,
        failure=RepairFailure(kind="transport", message=message, raw_text_truncated=raw_text),
    )


async def generate_recipe(
    dish_name: str,
    location: Optional[str] = None,
    cuisine: Optional[str] = None,
    main_ingredients: Optional[Sequence[str]] = None,
) -> RecipeParseResult:
    """Ask the text model for a recipe and run its answer through the repair pipeline.

    Transport problems and empty answers come back as ``kind="transport"``
    failures rather than exceptions.
    """
    settings = get_settings()
    if not settings.llm_base_url:
        return _transport_failure("LLM_BASE_URL is not configured")

    payload = {
        "model": settings.llm_model_name,
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
        "messages": [
            {
                "role": "user",
                "content": build_recipe_prompt(dish_name, location, cuisine, main_ingredients),
            }
        ],
        "stream": False,
    }
    timeout = httpx.Timeout(settings.llm_timeout_seconds, read=settings.llm_timeout_seconds, connect=10.0)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(
                f"{settings.llm_base_url.rstrip('/')}/v1/chat/completions",
                json=payload,
                headers=_headers(),
            )
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Recipe generation request failed for %s: %s", dish_name, exc)
        return _transport_failure(f"LLM request failed: {exc}")

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        error_info = data["error"]
        error_type = error_info.get("type", "unknown_error")
        error_message = str(error_info.get("message", "Unknown error"))
        logger.error(
            "LLM returned error in recipe generation: type=%s, message=%s",
            error_type,
            error_message[:500],
        )
        return _transport_failure(f"LLM error ({error_type}): {error_message}")

    choices = data.get("choices") if isinstance(data, dict) else None
    content = None
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        content = message.get("content") if isinstance(message, dict) else None
    if not content:
        logger.warning("Recipe generation for %s returned no content", dish_name)
        return _transport_failure("LLM response missing content")
    raw_content = content if isinstance(content, str) else str(content)
    logger.info("recipe llm raw content (%d chars) for %s", len(raw_content), dish_name)
    return parse_recipe_output(raw_content, fallback_title=dish_name)


ProgressCallback = Callable[[int, int, str], None]


async def generate_recipes_batch(
    dish_names: Sequence[str],
    location: Optional[str] = None,
    cuisine: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    delay_seconds: Optional[float] = None,
) -> BatchGenerationResult:
    """Generate recipes one dish at a time, waiting ``delay_seconds`` between requests.

    ``on_progress(current, total, dish_name)`` fires before each dish. A failed
    dish is recorded and the batch moves on.
    """
    delay = get_settings().llm_batch_delay_seconds if delay_seconds is None else delay_seconds
    total = len(dish_names)
    batch = BatchGenerationResult()
    for index, raw_name in enumerate(dish_names, start=1):
        dish_name = (raw_name or "").strip()
        if on_progress is not None:
            on_progress(index, total, dish_name)
        if not dish_name:
            batch.record(BatchRecipeOutcome(dish_name="", success=False, error="dish name is empty"))
            continue
        result = await generate_recipe(dish_name, location=location, cuisine=cuisine)
        batch.record(BatchRecipeOutcome.from_result(dish_name, result))
        if index < total and delay > 0:
            await asyncio.sleep(delay)
    logger.info("Recipe batch finished: %d generated, %d failed of %d", batch.success, batch.failed, total)
    return batch
