"""Integration tests for Dapic passthrough routes."""

from datetime import timedelta

from saron.core.date_helpers import local_today


def _records(count: int, prefix: str = "") -> list[dict]:
    return [{"Codigo": f"{prefix}{i}"} for i in range(count)]


class TestDapicRoutes:
    """Tests for /api/v1/dapic."""

    def test_list_stores(self, client):
        response = client.get("/api/v1/dapic/stores")

        assert response.status_code == 200
        assert response.json() == {"stores": ["saron1", "saron2", "saron3"], "all_stores_key": "todas"}

    def test_unknown_store(self, client):
        response = client.get("/api/v1/dapic/saron9/clientes")

        assert response.status_code == 404

    def test_clientes_single_store(self, client, dapic_server):
        """Test clientes are paginated to exhaustion for one store."""
        dapic_server.set_records("saron1", "/v1/clientes", _records(250))

        response = client.get("/api/v1/dapic/saron1/clientes")

        assert response.status_code == 200
        assert len(response.json()["Dados"]) == 250
        first = dapic_server.data_requests("/v1/clientes")[0]
        assert first.url.params["DataInicial"] == "2020-01-01"

    def test_clientes_all_stores(self, client, dapic_server):
        dapic_server.set_records("saron1", "/v1/clientes", _records(2))

        response = client.get("/api/v1/dapic/todas/clientes")

        assert response.status_code == 200
        body = response.json()
        assert set(body["stores"]) == {"saron1", "saron2", "saron3"}
        assert body["stores"]["saron3"] == {"Dados": _records(2)}
        assert body["errors"] == {}

    def test_vendaspdv_defaults(self, client, dapic_server):
        """Test the sales listing defaults to the last 30 days, page 1."""
        dapic_server.set_records("saron2", "/v1/vendaspdv", _records(3))

        response = client.get("/api/v1/dapic/saron2/vendaspdv")

        assert response.status_code == 200
        assert response.json() == {"Dados": _records(3)}

        params = dapic_server.data_requests("/v1/vendaspdv")[0].url.params
        today = local_today()
        assert params["DataInicial"] in {
            (today - timedelta(days=30)).isoformat(),
            (today - timedelta(days=29)).isoformat(),
        }
        assert params["FiltrarPor"] == "0"
        assert params["Status"] == "1"
        assert params["Pagina"] == "1"
        assert params["RegistrosPorPagina"] == "200"

    def test_vendaspdv_invalid_date(self, client, dapic_server):
        response = client.get("/api/v1/dapic/saron1/vendaspdv", params={"DataInicial": "01/03/2024"})

        assert response.status_code == 400
        assert dapic_server.requests == []

    def test_vendaspdv_all_stores_partial_failure(self, client, dapic_server):
        """Test a failing store is reported next to the others' data."""
        dapic_server.set_records("saron1", "/v1/vendaspdv", _records(1, "a"))
        dapic_server.set_records("saron2", "/v1/vendaspdv", _records(1, "b"))
        dapic_server.failing_stores.add("saron3")

        response = client.get(
            "/api/v1/dapic/todas/vendaspdv",
            params={"DataInicial": "2024-03-01", "DataFinal": "2024-03-31"},
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body["stores"]) == {"saron1", "saron2"}
        assert list(body["errors"]) == ["saron3"]

    def test_transport_error_maps_to_502(self, client, dapic_server):
        dapic_server.failing_stores.add("saron1")

        response = client.get("/api/v1/dapic/saron1/contas-pagar")

        assert response.status_code == 502

    def test_authentication_error_maps_to_502(self, client, dapic_server):
        dapic_server.failing_logins.add("saron1")

        response = client.get("/api/v1/dapic/saron1/orcamentos")

        assert response.status_code == 502

    def test_single_produto(self, client, dapic_server):
        dapic_server.resources[("saron2", "/v1/produtos/7")] = {"Codigo": 7, "Descricao": "Camisa"}

        response = client.get("/api/v1/dapic/saron2/produtos/7")

        assert response.status_code == 200
        assert response.json()["Descricao"] == "Camisa"

    def test_single_record_rejects_all_stores(self, client):
        response = client.get("/api/v1/dapic/todas/orcamentos/1")

        assert response.status_code == 404

    def test_explicit_page(self, client, dapic_server):
        dapic_server.set_records("saron1", "/v1/produtos", _records(5))

        response = client.get("/api/v1/dapic/saron1/produtos", params={"Pagina": 2, "RegistrosPorPagina": 2})

        assert response.status_code == 200
        assert response.json() == {"Dados": _records(5)[2:4]}
