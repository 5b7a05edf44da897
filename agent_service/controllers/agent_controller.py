"""
Agent Controller - profile endpoints for the logged-in agent
"""
from fastapi import APIRouter, Depends
from agent_service.schemas.agent import AgentEnvelope, AgentProfileUpdateRequest
from agent_service.services import AgentRegistry
from agent_service.utils.dependencies import get_agent_registry, get_current_agent

router = APIRouter(prefix="/agents", tags=["Agent Profile"])


@router.get("/me", response_model=AgentEnvelope)
async def get_profile(agent: dict = Depends(get_current_agent)):
    """Get current agent's profile"""
    return AgentEnvelope(data=agent)


@router.patch("/me", response_model=AgentEnvelope)
async def update_profile(
    request: AgentProfileUpdateRequest,
    agent: dict = Depends(get_current_agent),
    registry: AgentRegistry = Depends(get_agent_registry),
):
    """Update first name, last name or email"""
    updated = await registry.update_profile(agent["id"], request.model_dump(exclude_unset=True))
    return AgentEnvelope(data=updated)
