# auth_core/app/schemas/base.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Nomes em camelCase no JSON (accessToken, totpCode), snake_case no Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
