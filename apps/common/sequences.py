from django.db import IntegrityError, transaction

from apps.common.models import NumberSequence


def next_value(key):
    """Return the next value of the named counter.

    Must run inside the caller's transaction: the counter row stays locked
    until commit, so two writers never see the same value and a rolled back
    insert gives its number back.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("next_value() must be called inside transaction.atomic().")

    sequence = NumberSequence.objects.select_for_update().filter(key=key).first()
    if sequence is None:
        try:
            with transaction.atomic():
                NumberSequence.objects.create(key=key, last_value=0)
        except IntegrityError:
            pass
        sequence = NumberSequence.objects.select_for_update().get(key=key)

    sequence.last_value += 1
    sequence.save(update_fields=["last_value", "updated_at"])
    return sequence.last_value


def purchase_sequence_key(customer_id):
    return f"purchase:{customer_id}"


WAYBILL_SEQUENCE_KEY = "waybill"
