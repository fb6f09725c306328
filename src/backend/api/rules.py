from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from common.payroll_rules.catalog import FieldCatalog, default_catalog
from common.payroll_rules.config import RulesSettings, get_settings
from common.payroll_rules.editor import RuleEditor
from common.payroll_rules.exceptions import RuleNotFoundError
from common.payroll_rules.models import Rule
from common.payroll_rules.store import RuleSortKey, RuleStatusFilter, RuleStore, SortOrder
from common.payroll_rules.tester import RuleTester, preview_evaluator


router = APIRouter(prefix="/rules", tags=["rules"])


def get_store() -> RuleStore:
    return RuleStore(get_settings().store_path)


def get_catalog() -> FieldCatalog:
    return default_catalog()


def _get_or_404(store: RuleStore, rule_id: str) -> Rule:
    try:
        return store.get(rule_id)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail=f"Rule not found: {rule_id}") from None


def _with_defaults(payload: Dict[str, Any], settings: RulesSettings) -> Dict[str, Any]:
    """Fill category, priority and calculation decimal places that the payload leaves out."""
    data = dict(payload)
    data.setdefault("category", settings.default_category)
    data.setdefault("priority", settings.default_priority)
    calculations = data.get("calculations")
    if isinstance(calculations, dict):
        data["calculations"] = _calculation_with_defaults(calculations, settings)
    elif isinstance(calculations, list):
        data["calculations"] = [_calculation_with_defaults(c, settings) for c in calculations]
    return data


def _calculation_with_defaults(calc: Any, settings: RulesSettings) -> Any:
    if not isinstance(calc, dict) or "decimalPlaces" in calc or "decimal_places" in calc:
        return calc
    return {**calc, "decimalPlaces": settings.decimal_places}


def _parse_rule(payload: Dict[str, Any]) -> Rule:
    try:
        return Rule.from_dict(payload)
    except ValidationError as exc:
        detail = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
        raise HTTPException(status_code=422, detail=detail) from None


async def _validate_and_save(store: RuleStore, rule: Rule) -> Union[Dict[str, Any], JSONResponse]:
    saved: List[Rule] = []

    async def _persist(draft: Rule) -> None:
        saved.append(await run_in_threadpool(store.save, draft))

    editor = RuleEditor(rule, on_save=_persist)
    if not await editor.save():
        if editor.save_error:
            raise HTTPException(status_code=500, detail=editor.save_error)
        return JSONResponse(status_code=422, content={"errors": editor.errors})
    return saved[0].to_dict()


@router.get("")
def list_rules(
    search: str = Query(""),
    category: str = Query("all"),
    status: RuleStatusFilter = Query(RuleStatusFilter.ALL),
    sort_by: RuleSortKey = Query(RuleSortKey.LAST_MODIFIED),
    order: SortOrder = Query(SortOrder.DESC),
    store: RuleStore = Depends(get_store),
):
    rules = store.list(search=search, category=category, status=status, sort_by=sort_by, order=order)
    return [r.to_dict() for r in rules]


@router.get("/fields")
def search_fields(query: str = Query(""), catalog: FieldCatalog = Depends(get_catalog)):
    return [f.to_dict() for f in catalog.search(query)]


@router.get("/fields/categories")
def list_field_categories(catalog: FieldCatalog = Depends(get_catalog)):
    return [c.to_dict() for c in catalog.list_categories()]


@router.get("/{rule_id}")
def get_rule(rule_id: str, store: RuleStore = Depends(get_store)):
    return _get_or_404(store, rule_id).to_dict()


@router.post("", status_code=201)
async def create_rule(
    payload: Dict[str, Any] = Body(...),
    store: RuleStore = Depends(get_store),
    settings: RulesSettings = Depends(get_settings),
):
    rule = _parse_rule(_with_defaults({**payload, "id": None}, settings))
    return await _validate_and_save(store, rule)


@router.put("/{rule_id}")
async def update_rule(
    rule_id: str,
    payload: Dict[str, Any] = Body(...),
    store: RuleStore = Depends(get_store),
    settings: RulesSettings = Depends(get_settings),
):
    await run_in_threadpool(_get_or_404, store, rule_id)
    rule = _parse_rule(_with_defaults({**payload, "id": rule_id}, settings))
    return await _validate_and_save(store, rule)


@router.delete("/{rule_id}", status_code=204)
def delete_rule(rule_id: str, store: RuleStore = Depends(get_store)):
    try:
        store.delete(rule_id)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail=f"Rule not found: {rule_id}") from None
    return Response(status_code=204)


@router.post("/{rule_id}/duplicate", status_code=201)
def duplicate_rule(rule_id: str, store: RuleStore = Depends(get_store)):
    _get_or_404(store, rule_id)
    return store.duplicate(rule_id).to_dict()


@router.post("/{rule_id}/toggle")
def toggle_rule(rule_id: str, store: RuleStore = Depends(get_store)):
    _get_or_404(store, rule_id)
    return store.toggle_active(rule_id).to_dict()


@router.post("/{rule_id}/test")
async def run_rule_test(
    rule_id: str,
    test_data: Optional[Dict[str, Any]] = Body(None),
    store: RuleStore = Depends(get_store),
):
    rule = await run_in_threadpool(_get_or_404, store, rule_id)
    tester = RuleTester(rule, preview_evaluator(rule))
    result = await tester.test(test_data or {})
    return result.to_dict()
