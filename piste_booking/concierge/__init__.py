from piste_booking.concierge.prompts import TOOL_DECLARATIONS, build_system_prompt
from piste_booking.concierge.tools import ConciergeTools, ToolResult

__all__ = ["ConciergeTools", "ToolResult", "TOOL_DECLARATIONS", "build_system_prompt"]
