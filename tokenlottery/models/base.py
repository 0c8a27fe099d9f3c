import json
from typing import Any

from sqlalchemy.orm import DeclarativeBase

from tokenlottery.db.metadata import metadata_obj


class Base(DeclarativeBase):
    metadata = metadata_obj

    def to_json(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_json_str(self, *args: Any, **kwargs: Any) -> str:
        """Serialize :meth:`to_json` with the same arguments."""
        return json.dumps(self.to_json(*args, **kwargs), ensure_ascii=False)
