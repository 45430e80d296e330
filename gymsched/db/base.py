# Importar todos los modelos para que create_all los detecte
from gymsched.db.base_class import Base  # noqa
from gymsched.models.user import User, Member  # noqa
from gymsched.models.catalog import ClassType, GymClass  # noqa
from gymsched.models.schedule import Schedule, Enrollment  # noqa
from gymsched.models.invoice import Invoice  # noqa
