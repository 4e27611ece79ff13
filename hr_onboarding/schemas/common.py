from pydantic import BaseModel


def reject_explicit_nulls(model: BaseModel, fields: tuple[str, ...]) -> BaseModel:
    """Partial updates may omit a NOT NULL column but never send it as null."""
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name}_cannot_be_null")
    return model
