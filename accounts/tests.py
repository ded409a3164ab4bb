from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.tests.fixtures import make_location, make_staff
from .models import User


class LoginTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="manager@example.com", password="password", role="manager")

    def test_login_returns_tokens_and_staff_profile(self):
        staff = make_staff(make_location(), "Max", role="manager", shift=None)
        staff.user = self.user
        staff.save()

        response = self.client.post(
            reverse("login"), {"email": "manager@example.com", "password": "password"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["role"], "manager")
        self.assertEqual(body["staff_id"], staff.id)
        self.assertEqual(body["location_id"], staff.location_id)
        self.assertTrue(body["accessToken"])

        profile = self.client.get(reverse("profile"), HTTP_AUTHORIZATION=f"Bearer {body['accessToken']}")
        self.assertEqual(profile.status_code, status.HTTP_200_OK)
        self.assertEqual(profile.json()["email"], "manager@example.com")

    def test_bad_password(self):
        response = self.client.post(
            reverse("login"), {"email": "manager@example.com", "password": "wrong"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(email="root@example.com", password="password")
        self.assertEqual(admin.role, "admin")
        self.assertTrue(admin.is_manager)
