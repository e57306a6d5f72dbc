"""Order lifecycle core: placement, numbering and status transitions."""
