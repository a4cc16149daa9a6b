"""Pydantic schemas for the sourdough planner API.

Request/response models for:
- Recipes (with nested steps and stage ingredients)
- Catalogues (ingredients, predefined steps)
- Guided bakes (start, complete step, status, active list, history)

Bake payloads keep the camelCase wire names the web client already uses;
nested step objects stay snake_case apart from ``stageIngredients``.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- Catalogues ---

class IngredientOut(BaseModel):
    ingredient_id: int
    ingredient_name: str
    is_wet: bool


class PredefinedStepOut(WireModel):
    step_id: int
    step_name: str
    description: Optional[str]
    step_type: Optional[str]
    default_duration_minutes: Optional[int] = Field(None, alias="defaultDurationMinutes")


# --- Stage Ingredient ---

class StageIngredientCreate(BaseModel):
    ingredient_id: int
    percentage: float = Field(..., ge=0)
    is_wet: bool = False


class StageIngredientOut(BaseModel):
    stage_ingredient_id: int
    ingredient_id: int
    ingredient_name: str
    percentage: float
    is_wet: bool
    calculated_weight: Optional[float] = None


# --- Recipe ---

class RecipeStepCreate(WireModel):
    step_id: int
    step_order: int = Field(..., ge=0)
    duration_override: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    target_temperature_celsius: Optional[float] = None
    contribution_pct: Optional[float] = None
    target_hydration: Optional[float] = None
    stretch_fold_interval_minutes: Optional[int] = Field(None, ge=0)
    number_of_sf_sets: Optional[int] = Field(None, ge=0)
    stage_ingredients: list[StageIngredientCreate] = Field(default_factory=list, alias="stageIngredients")


class RecipeCreate(WireModel):
    recipe_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    target_dough_weight: float = Field(..., gt=0, alias="targetDoughWeight")
    hydration_percentage: float = Field(..., ge=0, alias="hydrationPercentage")
    salt_percentage: float = Field(..., ge=0, alias="saltPercentage")
    steps: list[RecipeStepCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_step_orders(self):
        orders = [s.step_order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise ValueError("Step orders must be unique within a recipe")
        return self


class RecipeStepOut(WireModel):
    recipe_step_id: str
    step_id: int
    step_name: str
    step_type: Optional[str]
    step_general_description: Optional[str]
    step_default_duration_minutes: Optional[int]
    step_order: int
    duration_override: Optional[int]
    notes: Optional[str]
    target_temperature_celsius: Optional[float]
    contribution_pct: Optional[float]
    target_hydration: Optional[float]
    stretch_fold_interval_minutes: Optional[int]
    number_of_sf_sets: Optional[int]
    stage_ingredients: list[StageIngredientOut] = Field(default_factory=list, alias="stageIngredients")


class RecipeOut(WireModel):
    recipe_id: str
    user_id: Optional[int]
    recipe_name: str
    description: Optional[str]
    target_dough_weight: Optional[float] = Field(None, alias="targetDoughWeight")
    hydration_percentage: Optional[float] = Field(None, alias="hydrationPercentage")
    salt_percentage: Optional[float] = Field(None, alias="saltPercentage")
    is_base_recipe: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    steps: list[RecipeStepOut] = []


class RecipeCreatedResponse(BaseModel):
    message: str
    recipe: RecipeOut


class MessageResponse(BaseModel):
    message: str


# --- Bake steps ---

class StepDetails(WireModel):
    """Recipe step definition merged with its live step log."""
    bake_step_log_id: str
    recipe_step_id: Optional[str]
    step_id: Optional[int]
    step_name: str
    step_order: int
    planned_duration_minutes: Optional[int]
    duration_override: Optional[int] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    target_temperature_celsius: Optional[float] = None
    stretch_fold_interval_minutes: Optional[int] = None
    number_of_sf_sets: Optional[int] = None
    stage_ingredients: list[StageIngredientOut] = Field(default_factory=list, alias="stageIngredients")
    actual_start_timestamp: datetime
    user_step_notes: Optional[str] = None


class HistoryStep(BaseModel):
    bake_step_log_id: str
    recipe_step_id: Optional[str]
    step_name: str
    step_order: int
    planned_duration_minutes: Optional[int]
    actual_start_timestamp: datetime
    actual_end_timestamp: Optional[datetime]
    user_step_notes: Optional[str]


# --- Bake commands ---

class StartBakeRequest(WireModel):
    recipe_id: str = Field(..., min_length=1, alias="recipeId")


class StartBakeResponse(WireModel):
    message: str
    bake_log_id: str = Field(..., alias="bakeLogId")
    current_bake_step_log_id: str = Field(..., alias="currentBakeStepLogId")
    first_step_details: StepDetails = Field(..., alias="firstStepDetails")
    bake_start_timestamp: datetime = Field(..., alias="bakeStartTimestamp")
    recipe_name: str = Field(..., alias="recipeName")
    status: str


class CompleteStepRequest(WireModel):
    current_bake_step_log_id: str = Field(..., min_length=1, alias="currentBakeStepLogId")
    user_notes_for_completed_step: Optional[str] = Field(None, alias="userNotesForCompletedStep")


class CompleteStepResponse(WireModel):
    message: str
    bake_log_id: str = Field(..., alias="bakeLogId")
    current_step_details: Optional[StepDetails] = Field(None, alias="currentStepDetails")


class StatusUpdateRequest(BaseModel):
    status: str


class StatusUpdateResponse(WireModel):
    message: str
    new_status: str = Field(..., alias="newStatus")
    bake_end_timestamp: Optional[datetime] = Field(None, alias="bakeEndTimestamp")


class NotesUpdateRequest(WireModel):
    user_overall_notes: Optional[str] = Field(None, alias="userOverallNotes")


# --- Bake reads ---

class BakeSummary(WireModel):
    bake_log_id: str = Field(..., alias="bakeLogId")
    recipe_id: str = Field(..., alias="recipeId")
    recipe_name: str = Field(..., alias="recipeName")
    status: str
    bake_start_timestamp: datetime = Field(..., alias="bakeStartTimestamp")
    bake_end_timestamp: Optional[datetime] = Field(None, alias="bakeEndTimestamp")
    user_overall_notes: Optional[str] = Field(None, alias="userOverallNotes")


class ActiveBake(BakeSummary):
    current_step_details: Optional[StepDetails] = Field(None, alias="currentStepDetails")


class ActiveBakesResponse(WireModel):
    active_bakes: list[ActiveBake] = Field(default_factory=list, alias="activeBakes")


class BakeHistoryResponse(BaseModel):
    bakes: list[BakeSummary] = []


class BakeDetail(ActiveBake):
    history_step_details: list[HistoryStep] = Field(default_factory=list, alias="historyStepDetails")
    recipe: Optional[RecipeOut] = None


# --- GenAI ---

class ExplainResponse(BaseModel):
    explanation: str


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)


class GenerateResponse(BaseModel):
    result: str


# --- Dev ---

class SeedResponse(BaseModel):
    user_id: int
    username: str
    access_token: str
    ingredients_created: int
    steps_created: int
    recipes_created: int
    message: str
