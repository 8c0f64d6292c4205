from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class QahwacupAdminUnfoldConfig(AppConfig):
    name = "qahwacup.contrib.admin_unfold"
    label = "qahwacup_admin_unfold"
    verbose_name = _("Admin (Unfold)")
