"""
Integration tests for the case-management API.

These tests exercise the HTTP surface end to end: authentication,
module permissions, the patient journey (interview, vaga decision and
history) and the professional link workflows under each link policy.
The tests use Django REST Framework's APIClient within the APITestCase
base class.

To run the tests:

```
pytest -q casework/tests
```
"""
import uuid

from django.core.cache import cache
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient, APITestCase

from ..models import AuditEvent, LinkRequest, Patient, Professional, SocialInterview, StatusHistoryRecord, User
from ..services import schema


class CaseworkAPITests(APITestCase):
    def setUp(self) -> None:
        """Create an administrator, two plain users, a professional and a patient."""
        cache.clear()
        schema.reset()
        self.admin = User.objects.create_user(
            username="coord", password="P@ssw0rd1", role="Coordenador Geral", email="coord@instituto.org"
        )
        self.user1 = User.objects.create_user(
            username="ana", password="P@ssw0rd1", role="Usuário", email="ana@instituto.org"
        )
        self.user2 = User.objects.create_user(
            username="bruno", password="P@ssw0rd1", role="Usuário", email="bruno@instituto.org"
        )
        self.professional = Professional.objects.create(email="ana@instituto.org", funcao="Psicóloga")
        self.patient = Patient.objects.create(name="Maria Souza")

    def tearDown(self) -> None:
        cache.clear()
        schema.reset()

    def as_user(self, user):
        self.client.force_authenticate(user=user)

    def set_link_policy(self, policy):
        self.as_user(self.admin)
        resp = self.client.put(reverse("access_settings"), {"link_policy": policy}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["link_policy"], policy)

    def history_count(self, patient_id):
        return StatusHistoryRecord.objects.filter(assistido_id=patient_id).count()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def test_requests_without_token_are_rejected(self):
        client = APIClient()
        resp = client.post(reverse("vaga_decisions"), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data, {"success": False, "message": resp.data["message"], "code": "UNAUTHENTICATED"})

    def test_token_authentication(self):
        token = Token.objects.create(user=self.admin)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        resp = client.get(reverse("access_settings"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["success"])

    def test_pending_account_token_is_refused(self):
        pending = User.objects.create_user(username="nova", password="P@ssw0rd1", status="pendente")
        token = Token.objects.create(user=pending)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        resp = client.get(reverse("access_settings"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data["code"], "UNAUTHENTICATED")

    def test_healthz(self):
        resp = APIClient().get(reverse("healthz"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json(), {"success": True, "db": True})
        self.assertTrue(resp["X-Request-ID"])

    def test_request_id_header_is_echoed(self):
        resp = APIClient().get(reverse("healthz"), HTTP_X_REQUEST_ID="req-42")
        self.assertEqual(resp["X-Request-ID"], "req-42")

    # ------------------------------------------------------------------
    # Patient journey
    # ------------------------------------------------------------------
    def test_interview_then_vaga_decision_moves_the_journey(self):
        self.as_user(self.admin)
        resp = self.client.post(reverse("patients"), {"name": "João Lima"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        patient_id = resp.data["patient"]["id"]
        self.assertEqual(len(resp.data["history"]), 1)
        self.assertIsNone(resp.data["history"][0]["status_anterior"])
        self.assertEqual(resp.data["history"][0]["motivo"], "Cadastro criado")

        self.as_user(self.user1)
        resp = self.client.post(reverse("social_interviews"), {
            "patient_id": str(patient_id),
            "interview_date": "2026-10-01",
            "assistente_social": "Lúcia",
            "renda_familiar": "2 salários",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["interview"]["renda_familiar"], "2 salários")
        self.assertEqual(resp.data["interview"]["interview_date"], "2026-10-01")
        self.assertEqual(Patient.objects.get(pk=patient_id).status_jornada, "entrevista_realizada")
        self.assertEqual(self.history_count(patient_id), 2)

        resp = self.client.post(reverse("vaga_decisions"), {
            "assistido_id": str(patient_id),
            "decisao": " Aprovado ",
            "justificativa": "Perfil compatível com a vaga",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data["success"])
        self.assertEqual(resp.data["decisao"], "aprovado")
        self.assertEqual(resp.data["status_jornada_atual"], "aprovado")
        self.assertEqual(resp.data["assistido_id"], str(patient_id))
        self.assertEqual(self.history_count(patient_id), 3)
        last = StatusHistoryRecord.objects.filter(assistido_id=patient_id).order_by("-changed_at", "-id").first()
        self.assertEqual(last.status_anterior, "entrevista_realizada")
        self.assertEqual(last.motivo, "Perfil compatível com a vaga")
        self.assertEqual(last.changed_by_id, self.user1.pk)

    def test_vaga_decision_validation(self):
        self.as_user(self.user1)
        url = reverse("vaga_decisions")

        resp = self.client.post(url, {
            "assistido_id": str(self.patient.pk), "decisao": "talvez", "justificativa": "x",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "VALIDATION_ERROR")

        resp = self.client.post(url, {
            "assistido_id": str(self.patient.pk), "decisao": "encaminhado", "justificativa": "   ",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(url, {
            "assistido_id": str(uuid.uuid4()), "decisao": "encaminhado", "justificativa": "Outra unidade",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "PATIENT_NOT_FOUND")

        resp = self.client.post(url, {
            "assistido_id": "não-é-uuid", "decisao": "encaminhado", "justificativa": "Outra unidade",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "INVALID_PATIENT")

        self.patient.refresh_from_db()
        self.assertEqual(self.patient.status_jornada, "em_fila_espera")
        self.assertFalse(self.patient.vaga_decisions.exists())

    def test_vaga_decision_requires_professionals_permission(self):
        reception = User.objects.create_user(username="recepcao", password="P@ssw0rd1", role="Recepção")
        self.as_user(reception)
        resp = self.client.post(reverse("vaga_decisions"), {
            "assistido_id": str(self.patient.pk), "decisao": "aprovado", "justificativa": "ok",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        reception.permissions = ["profissionais:create"]
        reception.save(update_fields=["permissions"])
        resp = self.client.post(reverse("vaga_decisions"), {
            "assistido_id": str(self.patient.pk), "decisao": "aprovado", "justificativa": "ok",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

    def test_interview_rejects_bad_date(self):
        self.as_user(self.user1)
        resp = self.client.post(reverse("social_interviews"), {
            "patient_id": str(self.patient.pk), "interview_date": "01/10/2026",
        }, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "VALIDATION_ERROR")
        self.assertFalse(SocialInterview.objects.exists())

    def test_interview_update_is_idempotent_on_the_journey(self):
        self.as_user(self.user1)
        resp = self.client.post(reverse("social_interviews"), {
            "patient_id": str(self.patient.pk), "interview_date": "2026-10-01",
        }, format="json")
        interview_id = resp.data["interview"]["id"]
        self.assertEqual(self.history_count(self.patient.pk), 1)

        url = reverse("social_interview_detail", args=[interview_id])
        resp = self.client.put(url, {"interview_date": "2026-10-02", "observacoes": "retorno"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["interview"]["interview_date"], "2026-10-02")
        self.assertEqual(resp.data["interview"]["patient_id"], str(self.patient.pk))
        self.assertEqual(self.history_count(self.patient.pk), 1)

        resp = self.client.put(reverse("social_interview_detail", args=[987654]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "INTERVIEW_NOT_FOUND")

    def test_patient_status_change(self):
        self.as_user(self.admin)
        url = reverse("patient_status", args=[self.patient.pk])

        resp = self.client.patch(url, {"status_jornada": "em_avaliacao", "motivo": "Triagem"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["previous_status"], "em_fila_espera")
        self.assertTrue(resp.data["changed"])
        self.assertEqual(resp.data["history"][-1]["motivo"], "Triagem")

        resp = self.client.patch(url, {"status_jornada": "em_avaliacao"}, format="json")
        self.assertFalse(resp.data["changed"])
        self.assertEqual(len(resp.data["history"]), 1)

        resp = self.client.patch(url, {"status_jornada": "fechado"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "INVALID_STATUS")

    def test_patient_create_requires_permission(self):
        self.as_user(self.user1)
        resp = self.client.post(reverse("patients"), {"name": "João Lima"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    # ------------------------------------------------------------------
    # Access settings
    # ------------------------------------------------------------------
    def test_access_settings_read_and_update(self):
        self.as_user(self.user1)
        resp = self.client.get(reverse("access_settings"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["link_policy"], "MANUAL_LINK_ADMIN")
        self.assertFalse(resp.data["data"]["allow_public_registration"])

        resp = self.client.put(reverse("access_settings"), {"link_policy": "AUTO_LINK_BY_EMAIL"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(self.admin)
        resp = self.client.put(reverse("access_settings"), {"registration_mode": "public_signup"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["registration_mode"], "PUBLIC_SIGNUP")
        self.assertTrue(resp.data["data"]["allow_public_registration"])
        self.assertTrue(AuditEvent.objects.filter(action="settings.access.update").exists())

        resp = self.client.put(reverse("access_settings"), {"link_policy": "QUALQUER"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    # ------------------------------------------------------------------
    # Professional links
    # ------------------------------------------------------------------
    def test_manual_policy_direct_link(self):
        link_url = reverse("professional_link_user", args=[self.professional.pk])

        self.as_user(self.user1)
        resp = self.client.patch(link_url, {"user_id": self.user1.pk}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(self.admin)
        resp = self.client.patch(link_url, {"user_id": self.user1.pk}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["changed"])
        self.assertEqual(resp.data["professional_id"], str(self.professional.pk))

        resp = self.client.patch(link_url, {"user_id": self.user2.pk}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "ALREADY_LINKED_ELSEWHERE")

        unlink_url = reverse("professional_unlink_user", args=[self.professional.pk])
        resp = self.client.patch(unlink_url, {}, format="json")
        self.assertTrue(resp.data["changed"])
        resp = self.client.patch(unlink_url, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data["changed"])

    def test_link_request_endpoints_follow_the_policy(self):
        self.as_user(self.user1)
        resp = self.client.post(reverse("professional_link_requests", args=[self.professional.pk]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "POLICY_DISABLED")

        resp = self.client.post(reverse("professional_auto_link"), {}, format="json")
        self.assertEqual(resp.data["code"], "POLICY_DISABLED")

        self.as_user(self.admin)
        resp = self.client.get(reverse("link_requests"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "POLICY_DISABLED")

    def test_self_claim_approval_then_second_claim_conflicts(self):
        self.set_link_policy("SELF_CLAIM_WITH_APPROVAL")
        claim_url = reverse("professional_link_requests", args=[self.professional.pk])

        self.as_user(self.user1)
        resp = self.client.post(claim_url, {"notes": "Sou a psicóloga da unidade"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        request_id = resp.data["request"]["id"]
        self.assertEqual(resp.data["request"]["status"], "pending")
        self.assertEqual(resp.data["request"]["professional_id"], str(self.professional.pk))

        resp = self.client.post(claim_url, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "PENDING_REQUEST_EXISTS")

        resp = self.client.patch(reverse("link_request_approve", args=[request_id]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "FORBIDDEN_NOT_ADMIN")

        self.as_user(self.admin)
        resp = self.client.get(reverse("link_requests"), {"status": "pending"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in resp.data["data"]], [request_id])
        self.assertEqual(resp.data["data"][0]["username"], "ana")

        resp = self.client.patch(reverse("link_request_approve", args=[request_id]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["request"]["status"], "approved")
        self.assertEqual(resp.data["request"]["decided_by_user_id"], self.admin.pk)
        self.assertEqual(resp.data["request"]["notes"], "Sou a psicóloga da unidade")
        self.professional.refresh_from_db()
        self.assertEqual(self.professional.user_id, self.user1.pk)

        resp = self.client.patch(reverse("link_request_reject", args=[request_id]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "ALREADY_DECIDED")

        self.as_user(self.user2)
        resp = self.client.post(claim_url, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "ALREADY_LINKED_ELSEWHERE")
        self.assertEqual(LinkRequest.objects.count(), 1)

    def test_self_claim_blocks_direct_link_but_allows_requests(self):
        self.set_link_policy("SELF_CLAIM_WITH_APPROVAL")

        self.as_user(self.user1)
        resp = self.client.patch(
            reverse("professional_link_user", args=[self.professional.pk]), {"user_id": self.user1.pk}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.professional.refresh_from_db()
        self.assertIsNone(self.professional.user_id)

        resp = self.client.post(
            reverse("professional_link_requests", args=[self.professional.pk]), {}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["request"]["status"], "pending")

    def test_reject_keeps_professional_unlinked(self):
        self.set_link_policy("SELF_CLAIM_WITH_APPROVAL")
        self.as_user(self.user2)
        resp = self.client.post(
            reverse("professional_link_requests", args=[self.professional.pk]), {}, format="json"
        )
        request_id = resp.data["request"]["id"]

        self.as_user(self.admin)
        resp = self.client.patch(
            reverse("link_request_reject", args=[request_id]), {"notes": "E-mail não confere"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["request"]["status"], "rejected")
        self.assertEqual(resp.data["request"]["notes"], "E-mail não confere")
        self.professional.refresh_from_db()
        self.assertIsNone(self.professional.user_id)

    def test_auto_link_by_email(self):
        self.set_link_policy("AUTO_LINK_BY_EMAIL")

        self.as_user(self.user1)
        resp = self.client.post(reverse("professional_auto_link"), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["changed"])
        self.assertEqual(resp.data["professional_id"], str(self.professional.pk))

        self.as_user(self.user2)
        resp = self.client.post(reverse("professional_auto_link"), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "AUTO_LINK_NO_MATCH")
