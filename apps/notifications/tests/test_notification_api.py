"""Integration tests for notification API endpoints."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.notifications.models import Notification

User = get_user_model()


class NotificationAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(username="renter", email="renter@example.com", password="Pass12345")
        self.other = User.objects.create_user(username="other", email="other@example.com", password="Pass12345")
        self.note = Notification.objects.create(
            user=self.user, type=Notification.Type.ENDING_SOON, title="Ends soon", message="Move your car"
        )
        Notification.objects.create(
            user=self.other, type=Notification.Type.ENDING_SOON, title="Ends soon", message="Move your car"
        )
        self.client.force_authenticate(self.user)

    def test_lists_only_own_notifications(self) -> None:
        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data], [self.note.pk])

    def test_mark_read(self) -> None:
        response = self.client.post(reverse("notification-mark-read", args=[self.note.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.note.refresh_from_db()
        self.assertTrue(self.note.is_read)

    def test_cannot_mark_someone_elses_notification(self) -> None:
        foreign = Notification.objects.get(user=self.other)

        response = self.client.post(reverse("notification-mark-read", args=[foreign.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self) -> None:
        response = self.client.post(reverse("notification-mark-all-read"))

        self.assertEqual(response.data, {"updated": 1})
        self.assertFalse(Notification.objects.get(user=self.other).is_read)
