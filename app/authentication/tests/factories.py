"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory, AdminUserFactory

    listener = UserFactory()
    artist = UserFactory(roles=[Role.ARTIST])
    admin = AdminUserFactory()
"""

import factory

from authentication.models import User
from authentication.roles import Role


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Users are created through UserManager.create_user() so passwords are
    hashed. The default role set is LISTENER.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    display_name = factory.Sequence(lambda n: f"User {n}")
    roles = factory.LazyFunction(lambda: [Role.LISTENER.value])
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class ArtistFactory(UserFactory):
    """Seller-capable user holding the ARTIST role."""

    email = factory.Sequence(lambda n: f"artist{n}@example.com")
    roles = factory.LazyFunction(lambda: [Role.ARTIST.value])


class AdminUserFactory(UserFactory):
    """Platform administrator holding the ADMIN role."""

    email = factory.Sequence(lambda n: f"admin{n}@example.com")
    roles = factory.LazyFunction(lambda: [Role.ADMIN.value])
    is_staff = True
