from django.core.management.base import BaseCommand, CommandError

from apps.accounts.models import User
from apps.shops.models import Shop, ShopMembership, StaffRole


class Command(BaseCommand):
    help = "Give a user a staff role in a shop, reactivating an existing membership."

    def add_arguments(self, parser):
        parser.add_argument("username")
        parser.add_argument("shop_slug")
        parser.add_argument("--role", default=StaffRole.SHOP_ADMIN, choices=StaffRole.values)

    def handle(self, *args, **options):
        user = User.objects.filter(username=options["username"]).first()
        if user is None:
            raise CommandError(f"User {options['username']} not found.")
        shop = Shop.objects.filter(slug=options["shop_slug"], is_active=True).first()
        if shop is None:
            raise CommandError(f"No active shop with slug {options['shop_slug']}.")

        membership, created = ShopMembership.objects.update_or_create(
            shop=shop,
            user=user,
            defaults={"role": options["role"], "is_active": True},
        )
        action = "created" if created else "updated"
        self.stdout.write(self.style.SUCCESS(f"{user.username} @ {shop.slug}: {membership.role} ({action})"))
