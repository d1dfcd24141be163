"""Domain modules package."""

from app.modules.appointments import models as appointments_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
from app.modules.scheduling import models as scheduling_models  # noqa: F401
from app.modules.students import models as students_models  # noqa: F401
from app.modules.teachers import models as teachers_models  # noqa: F401
