from .config import Settings


class Endpoints:
    """
    Build the three stage URLs from the configured base URLs.

    Layout:
    1. POST {simulation_base}/api/clients
    2. POST {simulation_base}/simulations/client/{clientId}
    3. POST {loan_base}/loans/generate/simulation/{simulationId}
    """

    def __init__(self, settings: Settings):
        self.simulation_base = settings.simulation_base_url
        self.loan_base = settings.loan_base_url

    @property
    def client_url(self) -> str:
        return f"{self.simulation_base}/api/clients"

    def simulation_url(self, client_id: int) -> str:
        return f"{self.simulation_base}/simulations/client/{client_id}"

    def loan_url(self, simulation_id: int) -> str:
        return f"{self.loan_base}/loans/generate/simulation/{simulation_id}"
