from typing import Optional

from fambook.schemas.base import CamelModel


class MarkNotificationsRead(CamelModel):
    # None marks every notification of the caller
    notification_ids: Optional[list[str]] = None
