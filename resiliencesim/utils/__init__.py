from resiliencesim.utils.ids import get_id

__all__ = ["get_id"]
