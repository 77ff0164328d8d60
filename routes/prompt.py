from typing import List

from fastapi import APIRouter, Depends, status

from models.prompt import PromptCreate, PromptTemplate, PromptUpdate
from routes.deps import get_store, not_found
from services.session_store import DocumentNotFound, SessionStore
from utils.auth import get_current_user

router = APIRouter(prefix="/prompt", tags=["prompt"])


@router.post("/", response_model=PromptTemplate, status_code=status.HTTP_201_CREATED)
def create_prompt(prompt_data: PromptCreate, current_user: dict = Depends(get_current_user),
                  store: SessionStore = Depends(get_store)):
    """Create a prompt template. An empty title becomes "New Prompt"."""
    return store.create_prompt(current_user["email"], prompt_data.title, prompt_data.prompt)


@router.get("/", response_model=List[PromptTemplate])
def get_prompts(current_user: dict = Depends(get_current_user), store: SessionStore = Depends(get_store)):
    return store.list_prompts(current_user["email"])


@router.get("/{prompt_id}", response_model=PromptTemplate)
def get_prompt(prompt_id: str, current_user: dict = Depends(get_current_user),
               store: SessionStore = Depends(get_store)):
    try:
        return store.get_prompt(current_user["email"], prompt_id)
    except DocumentNotFound as e:
        raise not_found(e)


@router.put("/{prompt_id}", response_model=PromptTemplate)
def update_prompt(prompt_id: str, prompt_update: PromptUpdate, current_user: dict = Depends(get_current_user),
                  store: SessionStore = Depends(get_store)):
    try:
        return store.update_prompt(current_user["email"], prompt_id,
                                   title=prompt_update.title, prompt=prompt_update.prompt)
    except DocumentNotFound as e:
        raise not_found(e)


@router.delete("/{prompt_id}")
def delete_prompt(prompt_id: str, current_user: dict = Depends(get_current_user),
                  store: SessionStore = Depends(get_store)):
    try:
        store.delete_prompt(current_user["email"], prompt_id)
    except DocumentNotFound as e:
        raise not_found(e)
    return {"message": "Prompt deleted successfully"}
