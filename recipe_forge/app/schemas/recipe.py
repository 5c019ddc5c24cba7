"""Canonical recipe schema and the validation gate run at the end of the repair pipeline."""

import enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Heat(str, enum.Enum):
    LOW = "low"
    MEDIUM_LOW = "medium-low"
    MEDIUM = "medium"
    MEDIUM_HIGH = "medium-high"
    HIGH = "high"


class IconKey(str, enum.Enum):
    MEAT = "meat"
    VEG = "veg"
    FRUIT = "fruit"
    SEAFOOD = "seafood"
    GRAIN = "grain"
    BEAN = "bean"
    DAIRY = "dairy"
    EGG = "egg"
    SPICE = "spice"
    SAUCE = "sauce"
    OIL = "oil"
    TOOL = "tool"
    OTHER = "other"


class Ratio(str, enum.Enum):
    WIDE = "16:9"
    STANDARD = "4:3"
    PHOTO = "3:2"


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow", allow_inf_nan=False)


class Summary(_Lenient):
    oneLine: str = Field(min_length=1)
    healingTone: str = Field(min_length=1)
    flavorTags: Optional[List[str]] = None
    difficulty: Difficulty
    timeTotalMin: float = Field(gt=0)
    timeActiveMin: float = Field(gt=0)
    servings: float = Field(gt=0)
    scaleHint: Optional[str] = None


class StoryBlock(_Lenient):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    tags: Optional[List[str]] = None


class IngredientItem(_Lenient):
    name: str = Field(min_length=1)
    iconKey: Optional[IconKey] = None
    amount: float = Field(gt=0)
    unit: str = Field(min_length=1)
    prep: Optional[str] = None
    optional: Optional[bool] = None
    substitutes: Optional[List[str]] = None
    allergens: Optional[List[str]] = None
    notes: Optional[str] = None


class IngredientSection(_Lenient):
    section: str = Field(min_length=1)
    items: List[IngredientItem] = Field(min_length=1)


class EquipmentItem(_Lenient):
    name: str = Field(min_length=1)
    required: bool = True
    notes: Optional[str] = None


class Step(_Lenient):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    action: str = Field(min_length=1)
    speechText: Optional[str] = None
    timerSec: Optional[float] = Field(None, ge=0)
    visualCue: Optional[str] = None
    failPoint: Optional[str] = None
    photoBrief: Optional[str] = None
    heat: Heat = Heat.MEDIUM
    timeMin: Optional[float] = Field(None, ge=0)
    timeMax: Optional[float] = Field(None, ge=0)
    statusChecks: Optional[List[str]] = None
    failurePoints: Optional[List[str]] = None
    recovery: Optional[str] = None
    safeNote: Optional[str] = None
    imagePrompt: Optional[str] = None
    negativePrompt: Optional[str] = None


class FaqItem(_Lenient):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class TroubleshootingItem(_Lenient):
    problem: str = Field(min_length=1)
    cause: str = Field(min_length=1)
    fix: str = Field(min_length=1)


class RelatedRecipes(_Lenient):
    similar: Optional[List[str]] = None
    pairing: Optional[List[str]] = None


class Pairing(_Lenient):
    suggestions: Optional[List[str]] = None
    sauceOrSide: Optional[List[str]] = None


class ImageRatios(_Lenient):
    cover: Optional[str] = None
    step: Optional[str] = None
    ingredientsFlatlay: Optional[str] = None


class StyleGuide(_Lenient):
    theme: Optional[str] = None
    lighting: Optional[str] = None
    composition: Optional[str] = None
    aesthetic: Optional[str] = None
    visualTheme: Optional[str] = None
    palette: Optional[List[str]] = None
    materials: Optional[List[str]] = None
    props: Optional[List[str]] = None
    compositionRules: Optional[List[str]] = None
    imageRatios: Optional[ImageRatios] = None


class ImageShot(_Lenient):
    key: str = Field(min_length=1)
    title: Optional[str] = None
    # Empty prompts are placeholder slots awaiting the image pipeline
    imagePrompt: str = ""
    negativePrompt: Optional[str] = None
    ratio: Ratio
    imageUrl: Optional[str] = None


class Nutrition(_Lenient):
    perServing: Optional[Dict[str, float]] = None
    dietaryLabels: Optional[List[str]] = None
    disclaimer: Optional[str] = None
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fiber: Optional[float] = Field(None, ge=0)
    sodium: Optional[float] = Field(None, ge=0)


class RecipeTags(_Lenient):
    scenes: Optional[List[str]] = None
    cookingMethods: Optional[List[str]] = None
    tastes: Optional[List[str]] = None
    crowds: Optional[List[str]] = None
    occasions: Optional[List[str]] = None
    keywords: Optional[List[str]] = None


class Origin(_Lenient):
    country: Optional[str] = None
    region: Optional[str] = None
    notes: Optional[str] = None


class RecipeRecord(_Lenient):
    schemaVersion: Optional[str] = None
    id: Optional[str] = None
    titleZh: str = Field(min_length=1)
    titleEn: Optional[str] = None
    aliases: Optional[List[str]] = None
    origin: Optional[Origin] = None
    summary: Summary
    story: Optional[Union[StoryBlock, str]] = None
    culturalStory: Optional[str] = None
    nutrition: Optional[Nutrition] = None
    equipment: Optional[List[EquipmentItem]] = None
    ingredients: List[IngredientSection] = Field(min_length=1)
    steps: List[Step] = Field(min_length=1)
    faq: Optional[List[FaqItem]] = None
    tips: Optional[List[str]] = None
    troubleshooting: Optional[List[TroubleshootingItem]] = None
    relatedRecipes: Optional[RelatedRecipes] = None
    pairing: Optional[Pairing] = None
    styleGuide: StyleGuide
    imageShots: List[ImageShot] = Field(min_length=3)
    seo: Optional[Dict[str, Any]] = None
    tags: Optional[RecipeTags] = None
    notes: Optional[List[str]] = None

    @field_validator("titleZh")
    @classmethod
    def validate_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("titleZh must not be blank")
        return value


class ValidationOutcome(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    issues: List[str] = Field(default_factory=list)


def format_validation_issues(exc: ValidationError) -> List[str]:
    issues: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []) if part is not None)
        msg = err.get("msg", "Invalid value")
        issues.append(f"{loc}: {msg}" if loc else msg)
    return issues


def validate_recipe(candidate: Any) -> ValidationOutcome:
    """Accept or reject a normalized candidate; never raises."""
    try:
        record = RecipeRecord.model_validate(candidate)
    except ValidationError as exc:
        return ValidationOutcome(success=False, issues=format_validation_issues(exc))
    except (OverflowError, RecursionError) as exc:
        return ValidationOutcome(success=False, issues=[f"{type(exc).__name__}: {exc}"])
    return ValidationOutcome(
        success=True, data=record.model_dump(mode="json", exclude_unset=True)
    )
