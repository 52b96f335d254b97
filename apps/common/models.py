from django.db import models


class NumberSequence(models.Model):
    key = models.CharField(max_length=120, primary_key=True)
    last_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.key}={self.last_value}"
