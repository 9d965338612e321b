from fastapi import Header, HTTPException


async def get_learner_id(x_learner_id: str | None = Header(default=None)) -> str:
    """Learner identity from the X-Learner-Id header. Authentication happens upstream."""
    if x_learner_id is None or not x_learner_id.strip():
        raise HTTPException(status_code=401, detail="Missing learner identity")
    return x_learner_id.strip()
