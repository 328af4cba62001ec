# Importing the package registers every table on Base.metadata
from app.models.project import Project  # noqa: F401
from app.models.bid import Bid  # noqa: F401
from app.models.contract import Contract  # noqa: F401
from app.models.notice import Notice  # noqa: F401
