from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from recipe_forge.app.services.llm_repair.models import RecipeParseResult


class BatchRecipeOutcome(BaseModel):
    dish_name: str
    success: bool
    recipe: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, dish_name: str, result: RecipeParseResult) -> "BatchRecipeOutcome":
        error = None
        if not result.success:
            error = result.failure.message if result.failure is not None else "recipe generation failed"
        return cls(
            dish_name=dish_name,
            success=result.success,
            recipe=result.recipe,
            error=error,
            warnings=result.warnings,
        )


class BatchGenerationResult(BaseModel):
    """Per-dish outcomes of one sequential batch plus success/failure counts."""

    success: int = 0
    failed: int = 0
    results: List[BatchRecipeOutcome] = Field(default_factory=list)

    def record(self, outcome: BatchRecipeOutcome) -> None:
        self.results.append(outcome)
        if outcome.success:
            self.success += 1
        else:
            self.failed += 1
