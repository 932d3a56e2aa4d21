# Import all models so Base.metadata is populated before create_all.
from ajl.models.template import TemplateRow  # noqa: F401
from ajl.models.instance import InstanceEventRow, InstanceRow, PaymentEventRow  # noqa: F401
from ajl.models.sinking import SinkingEventRow, SinkingFundRow  # noqa: F401
from ajl.models.settings import ActionRow, MetaRow, MonthSettingsRow  # noqa: F401
