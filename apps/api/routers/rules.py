"""
Rules API Router
User-authored normalization overrides
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from apps.api.dependencies import get_session
from packages.common.schemas.ticket import Rule
from packages.common.session import SessionContext

router = APIRouter()


@router.get("", response_model=List[Rule])
async def list_rules(session: SessionContext = Depends(get_session)) -> List[Rule]:
    return await session.rules.get_rules()


@router.post("", response_model=Rule, status_code=status.HTTP_201_CREATED)
async def add_rule(rule: Rule, session: SessionContext = Depends(get_session)) -> Rule:
    """Append a rule; it takes effect at the end of the precedence list"""
    if not rule.pattern.strip() or not rule.normalized.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="pattern and normalized must not be blank",
        )

    await session.rules.add_rule(rule)
    return rule
