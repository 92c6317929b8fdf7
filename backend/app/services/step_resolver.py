"""Resolve which components render on a dynamic page.

No caching: each call reads the committed configuration, so an admin
change is picked up by the next page render of any wizard session.
"""

from app.services.components import ComponentType
from app.services.step_config import StepConfigStore, check_page


class StepResolver:

    def __init__(self, config: StepConfigStore):
        self.config = config

    async def components_for_page(self, page: int) -> list[ComponentType]:
        """Components assigned to `page`, in component-identifier order."""
        check_page(page)
        snapshot = await self.config.snapshot()
        return sorted(snapshot.components_on(page), key=lambda c: c.value)
