# Charge sur les lectures publiques du checkout (devis configurateur, taux, statut de commande)
from locust import HttpUser, task, between
import json
import os

# Configuration à deviser: fichier JSON (LOCUST_CONFIGURATION_FILE) ou id de fonction seul
def _load_configuration() -> dict:
    path = os.getenv("LOCUST_CONFIGURATION_FILE", "").strip()
    if path:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    function_id = os.getenv("LOCUST_FUNCTION_OPTION_ID", "").strip()
    if not function_id:
        raise RuntimeError("Fournissez LOCUST_CONFIGURATION_FILE (JSON) ou LOCUST_FUNCTION_OPTION_ID.")
    return {"function_option_id": function_id, "steps": [], "extras": [], "addon_ids": []}


class StorefrontUser(HttpUser):
    wait_time = between(0.5, 2.0)

    def on_start(self):
        self.headers = {"Accept": "application/json"}
        bearer = os.getenv("LOCUST_BEARER", "").strip()
        if bearer:
            self.headers["Authorization"] = f"Bearer {bearer}"
        self.configuration = _load_configuration()
        self.locale = os.getenv("LOCUST_LOCALE", "en")

    @task(5)
    def quote(self):
        with self.client.post(
            "/api/v1/configurator/quote",
            json={"configuration": self.configuration, "locale": self.locale},
            headers=self.headers,
            name="POST /api/v1/configurator/quote",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"quote failed ({resp.status_code}): {resp.text[:200]}")
            elif resp.json().get("total", 0) <= 0:
                resp.failure("quote total <= 0")
            else:
                resp.success()

    @task(2)
    def exchange_rate(self):
        self.client.get("/api/v1/payments/exchange-rate", name="GET /api/v1/payments/exchange-rate", headers=self.headers)

    @task(1)
    def order_status_polling(self):
        # Session inconnue: la page de succès voit 'processing' tant que le webhook n'est pas passé
        self.client.get("/api/v1/payments/orders/cs_load_unknown", name="GET /api/v1/payments/orders/[id]", headers=self.headers)
