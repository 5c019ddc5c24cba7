import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from recipe_forge.app.schemas.generation import BatchGenerationResult
from recipe_forge.app.services import llm_client
from recipe_forge.app.services.llm_repair.models import RecipeParseResult
from recipe_forge.app.services.recipe_pipeline import parse_recipe_output

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


class ParseOutputRequest(BaseModel):
    raw_text: str
    fallback_title: Optional[str] = None


class GenerateRecipeRequest(BaseModel):
    dish_name: str
    location: Optional[str] = None
    cuisine: Optional[str] = None
    main_ingredients: List[str] = Field(default_factory=list)


class GenerateBatchRequest(BaseModel):
    dish_names: List[str]
    location: Optional[str] = None
    cuisine: Optional[str] = None


def _result_response(result: RecipeParseResult) -> JSONResponse:
    if result.success:
        status_code = status.HTTP_200_OK
    elif result.failure is not None and result.failure.kind == "transport":
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.post("/parse-output", response_model=RecipeParseResult)
def parse_output(payload: ParseOutputRequest):
    result = parse_recipe_output(payload.raw_text, fallback_title=payload.fallback_title)
    return _result_response(result)


@router.post("/generate", response_model=RecipeParseResult)
async def generate(payload: GenerateRecipeRequest):
    dish_name = payload.dish_name.strip()
    if not dish_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="dish_name is required")
    logger.info("Generating recipe for %s", dish_name)
    result = await llm_client.generate_recipe(
        dish_name,
        location=payload.location,
        cuisine=payload.cuisine,
        main_ingredients=payload.main_ingredients,
    )
    return _result_response(result)


@router.post("/generate-batch", response_model=BatchGenerationResult)
async def generate_batch(payload: GenerateBatchRequest):
    if not any(name.strip() for name in payload.dish_names):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="dish_names must not be empty")
    logger.info("Generating %d recipes in batch", len(payload.dish_names))
    return await llm_client.generate_recipes_batch(
        payload.dish_names,
        location=payload.location,
        cuisine=payload.cuisine,
    )
