# Import all models here
from .user import User, Rol
from .person import Person, Role, PersonStatus
from .access_event import AccessEvent, Direction
from .visitor import VisitorPass, PassState
from .alert import Alert, AlertType, Severity
from .security_log import SecurityLog, SecurityCategory
from .institution import TrainingGroup, Environment, EnvironmentAssignment, Shift

__all__ = [
    "User", "Rol", "Person", "Role", "PersonStatus", "AccessEvent", "Direction",
    "VisitorPass", "PassState", "Alert", "AlertType", "Severity",
    "SecurityLog", "SecurityCategory",
    "TrainingGroup", "Environment", "EnvironmentAssignment", "Shift",
]
