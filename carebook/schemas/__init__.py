# Schemas package (re-export feature modules for stable imports)
from .appointments.appointment import *
from .notifications.notification import *
from .reviews.review import *
from .prescriptions.prescription import *
from .common.common import *
