from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import CustomUser
from customers.models import DeliveryAddress
from customers.serializers import DeliveryAddressSerializer

NEPAL = {
    "recipient_name": "Sita Sharma",
    "phone": "+977-9800000000",
    "country": "NP",
    "province": "bagmati",
    "district": "Kathmandu",
    "municipality": "Kathmandu Metropolitan City",
    "ward": 10,
}

US = {
    "recipient_name": "John Doe",
    "country": "us",
    "address_line1": "1 Main St",
    "city": "Springfield",
    "state_province_region": "IL",
    "postal_code": "62701",
}


class DeliveryAddressSerializerTests(TestCase):
    def test_nepal_address_normalises_province(self):
        ser = DeliveryAddressSerializer(data=NEPAL)
        self.assertTrue(ser.is_valid(), ser.errors)
        self.assertEqual(ser.validated_data["province"], "Bagmati")

    def test_nepal_requires_hierarchy(self):
        ser = DeliveryAddressSerializer(data={**NEPAL, "province": "Atlantis", "ward": 36, "district": ""})
        self.assertFalse(ser.is_valid())
        self.assertEqual(set(ser.errors), {"province", "ward", "district"})

    def test_nepal_does_not_need_flat_fields(self):
        ser = DeliveryAddressSerializer(data=NEPAL)
        self.assertTrue(ser.is_valid(), ser.errors)

    def test_flat_address_requires_line1_and_city(self):
        ser = DeliveryAddressSerializer(data={**US, "address_line1": "", "city": ""})
        self.assertFalse(ser.is_valid())
        self.assertEqual(set(ser.errors), {"address_line1", "city"})

    def test_country_is_upper_cased(self):
        ser = DeliveryAddressSerializer(data=US)
        self.assertTrue(ser.is_valid(), ser.errors)
        self.assertEqual(ser.validated_data["country"], "US")


class DeliveryAddressApiTests(TestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user("buyer", password="pw")
        self.other = CustomUser.objects.create_user("other", password="pw")
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_first_address_becomes_default(self):
        resp = self.client.post("/api/addresses/", US, format="json")
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertTrue(resp.data["is_default"])

    def test_new_default_clears_previous(self):
        first = self.client.post("/api/addresses/", US, format="json").data
        second = self.client.post("/api/addresses/", {**NEPAL, "is_default": True}, format="json").data
        self.assertFalse(DeliveryAddress.objects.get(pk=first["id"]).is_default)
        self.assertTrue(DeliveryAddress.objects.get(pk=second["id"]).is_default)
        self.assertEqual(DeliveryAddress.objects.filter(user=self.user, is_default=True).count(), 1)

    def test_partial_update_is_validated_against_stored_row(self):
        created = self.client.post("/api/addresses/", NEPAL, format="json").data
        resp = self.client.patch(f"/api/addresses/{created['id']}/", {"ward": 40}, format="json")
        self.assertEqual(resp.status_code, 400)
        resp = self.client.patch(f"/api/addresses/{created['id']}/", {"ward": 4}, format="json")
        self.assertEqual(resp.status_code, 200, resp.data)

    def test_users_only_see_their_own(self):
        DeliveryAddress.objects.create(user=self.other, recipient_name="X", country="US",
                                       address_line1="2 Elm", city="Austin")
        self.client.post("/api/addresses/", US, format="json")
        resp = self.client.get("/api/addresses/")
        self.assertEqual(len(resp.data), 1)
        foreign = DeliveryAddress.objects.get(user=self.other)
        self.assertEqual(self.client.get(f"/api/addresses/{foreign.pk}/").status_code, 404)

    def test_anonymous_rejected(self):
        self.assertEqual(APIClient().get("/api/addresses/").status_code, 401)
