from .auth import (
    get_current_user, hash_password, verify_password, create_tokens,
    decode_access_token, decode_refresh_token, InvalidToken
)
from .labels import generate_qr_base64, unit_label_payload
from .unit_repository import BloodUnitRepository, MongoBloodUnitRepository
from .blood_stock import (
    BloodStockLedger, StockError, InvalidStockOperation, NoAvailableUnits,
    BLOOD_TYPES, units_for_quantity, is_critical, generate_batch_id
)
