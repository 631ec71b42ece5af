from app.schemas.base import CamelModel


class VendorCacheResponse(CamelModel):
    id: str
    vendor_name: str
    category_id: str
    hit_count: int
