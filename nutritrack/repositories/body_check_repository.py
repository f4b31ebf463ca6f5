from ..database.models import Stores
from ..schemas import BodyCheckItem
from .base import UserScopedRepository


class BodyCheckRepository(UserScopedRepository[BodyCheckItem]):
    collection = Stores.BODY_CHECKS
    model = BodyCheckItem
