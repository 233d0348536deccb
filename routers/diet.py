from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

import storage
from principal import require_any
from serializers import diet_level_public, food_item_public, meal_plan_public, recipe_public

router = APIRouter(dependencies=[Depends(require_any)])


@router.get("/api/diet-levels")
def diet_levels():
    return JSONResponse([diet_level_public(r) for r in storage.get_diet_levels()])


@router.get("/api/meal-plans/{diet_level_id}")
def meal_plans(diet_level_id: int):
    return JSONResponse([meal_plan_public(r) for r in storage.get_meal_plans_by_diet_level(diet_level_id)])


@router.get("/api/recipes/{meal_plan_id}")
def recipes(meal_plan_id: int):
    return JSONResponse([recipe_public(r) for r in storage.get_recipes_by_meal_plan(meal_plan_id)])


@router.get("/api/food-items/{category}")
def food_items(category: str):
    return JSONResponse([food_item_public(r) for r in storage.get_food_items_by_category(category)])
