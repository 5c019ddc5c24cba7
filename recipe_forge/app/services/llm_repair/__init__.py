"""Repair of malformed recipe JSON produced by text models.

Text-level passes (preprocess, string passes, comma insertion, literal cleanup)
run before parsing; the unwrapper, normalizer and guarantor then work on the
parsed tree. ``recipe_forge.app.services.recipe_pipeline`` chains them.
"""

from recipe_forge.app.services.llm_repair.extraction import (
    extract_balanced_object,
    unwrap_payload,
)
from recipe_forge.app.services.llm_repair.guarantor import ensure_minimums
from recipe_forge.app.services.llm_repair.literals import (
    quote_bare_scalar_values,
    repair_literals,
    rewrite_amount_fractions,
    strip_illegal_commas,
)
from recipe_forge.app.services.llm_repair.models import (
    ParseErrorPosition,
    RecipeParseResult,
    RepairFailure,
    RepairWarnings,
)
from recipe_forge.app.services.llm_repair.normalizer import (
    coerce_number,
    coerce_string_list,
    normalize_recipe,
    parse_ingredient_line,
)
from recipe_forge.app.services.llm_repair.preprocess import (
    preprocess,
    strip_code_fences,
    strip_invalid_control_chars,
    strip_json_comments,
    trim_to_object,
)
from recipe_forge.app.services.llm_repair.string_passes import (
    collapse_doubled_quotes,
    convert_single_quotes,
    escape_string_newlines,
    normalize_fullwidth_punctuation,
    quote_bare_keys,
    repair_quotes,
)
from recipe_forge.app.services.llm_repair.structural import insert_missing_commas
from recipe_forge.app.services.llm_repair.vocabulary import (
    map_difficulty,
    map_heat,
    map_icon_key,
    parse_ratio,
)

__all__ = [
    # Models
    "ParseErrorPosition",
    "RecipeParseResult",
    "RepairFailure",
    "RepairWarnings",
    # Text passes
    "preprocess",
    "strip_code_fences",
    "strip_invalid_control_chars",
    "strip_json_comments",
    "trim_to_object",
    "normalize_fullwidth_punctuation",
    "escape_string_newlines",
    "convert_single_quotes",
    "quote_bare_keys",
    "collapse_doubled_quotes",
    "repair_quotes",
    "insert_missing_commas",
    "strip_illegal_commas",
    "rewrite_amount_fractions",
    "quote_bare_scalar_values",
    "repair_literals",
    # Tree passes
    "extract_balanced_object",
    "unwrap_payload",
    "normalize_recipe",
    "ensure_minimums",
    # Vocabulary
    "coerce_number",
    "coerce_string_list",
    "map_difficulty",
    "map_heat",
    "map_icon_key",
    "parse_ingredient_line",
    "parse_ratio",
]
