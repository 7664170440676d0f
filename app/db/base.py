from typing import Any
from sqlalchemy.orm import as_declarative, declared_attr

@as_declarative()
class Base:
    id: Any
    __name__: str

    # Class 'ContentCplMapping' automatically becomes table 'content_cpl_mapping'
    # unless the model sets __tablename__ explicitly.
    @declared_attr
    def __tablename__(cls) -> str:
        import re
        # Converts CamelCase to snake_case
        return re.sub(r'(?<!^)(?=[A-Z])', '_', cls.__name__).lower()
