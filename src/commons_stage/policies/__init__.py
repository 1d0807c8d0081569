"""Permission policies evaluated before community mutations."""
