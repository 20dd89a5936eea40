from django.db import models


class SystemSetting(models.Model):
    """
    Simple key/value settings store for runtime overrides.
    Example keys:
      - WORK_START (e.g., '08:30')  default working window start
      - WORK_END (e.g., '19:00')    default working window end
      - BOOKING_LEAD_MINUTES (e.g., '15')  same-day minimum lead time
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.CharField(max_length=200)

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_value(cls, key, default=None):
        row = cls.objects.filter(key=key).first()
        return row.value if row else default
