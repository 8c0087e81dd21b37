import pytest

from bi_dashboard import config


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the built-in configuration."""
    monkeypatch.delenv(config.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(config, "_active_config", None)
    return config.DEFAULT_CONFIG


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "data").mkdir()
    return tmp_path


@pytest.fixture
def write_data(data_dir):
    """Write text at a site-relative path under data_dir."""

    def _write(site_path, text):
        target = data_dir / site_path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        return target

    return _write


@pytest.fixture
def leads():
    return [
        {
            "ID_Lead": "L1",
            "Data do Primeiro Contato": "15/01/2025",
            "Canal de Origem": "Google Ads",
            "Campanha": "Search Marca",
            "Vendedor que atendeu": "Ana",
            "STATUS DO LEAD": "Convertido",
            "Receita Gerada": 12000,
            "Tempo até Conversão (Dias)": 4,
            "Motivo da Perda": None,
        },
        {
            "ID_Lead": "L2",
            "Data do Primeiro Contato": "20/01/2025",
            "Canal de Origem": "Meta Ads",
            "Campanha": "Remarketing",
            "Vendedor que atendeu": "Ana",
            "STATUS DO LEAD": "Perdido",
            "Receita Gerada": None,
            "Tempo até Conversão (Dias)": None,
            "Motivo da Perda": "Preço",
        },
        {
            "ID_Lead": "L3",
            "Data do Primeiro Contato": "03/02/2025",
            "Canal de Origem": "Google Ads",
            "Campanha": None,
            "Vendedor que atendeu": "Bruno",
            "STATUS DO LEAD": "Convertido",
            "Receita Gerada": 30000,
            "Tempo até Conversão (Dias)": 10,
            "Motivo da Perda": None,
        },
        {
            "ID_Lead": "L4",
            "Data do Primeiro Contato": "10/12/2024",
            "Canal de Origem": None,
            "Campanha": None,
            "Vendedor que atendeu": None,
            "STATUS DO LEAD": "Em Atendimento",
            "Receita Gerada": None,
            "Tempo até Conversão (Dias)": None,
            "Motivo da Perda": None,
        },
        {
            "ID_Lead": "L5",
            "Data do Primeiro Contato": "22/02/2025",
            "Canal de Origem": "Meta Ads",
            "Campanha": "Remarketing",
            "Vendedor que atendeu": "Bruno",
            "STATUS DO LEAD": "Perdido",
            "Receita Gerada": None,
            "Tempo até Conversão (Dias)": None,
            "Motivo da Perda": "Preço",
        },
        {
            "ID_Lead": "L6",
            "Data do Primeiro Contato": "25/02/2025",
            "Canal de Origem": "Indicação",
            "Campanha": None,
            "Vendedor que atendeu": "Bruno",
            "STATUS DO LEAD": "Perdido",
            "Receita Gerada": None,
            "Tempo até Conversão (Dias)": None,
            "Motivo da Perda": "Escolheu concorrente",
        },
    ]


@pytest.fixture
def ads():
    return [
        {"Data": "01/01/2025", "CANAL_ORIGEM": "Google Ads", "Impressões do anúncio": 10000,
         "Cliques": 300, "Custo": 600.0, "Conversões": 15, "Receita": 3000.0},
        {"Data": "02/01/2025", "CANAL_ORIGEM": "Google Ads", "Impressões do anúncio": 10000,
         "Cliques": 100, "Custo": 400.0, "Conversões": 5, "Receita": 2000.0},
        {"Data": "01/01/2025", "CANAL_ORIGEM": "Meta Ads", "Impressões do anúncio": 20000,
         "Cliques": 200, "Custo": 200.0, "Conversões": 0, "Receita": 0},
        {"Data": "01/01/2025", "CANAL_ORIGEM": None, "Impressões do anúncio": 1000,
         "Cliques": 10, "Custo": 50.0, "Conversões": 1, "Receita": 100.0},
    ]


@pytest.fixture
def calculations():
    return [
        {"Bloco": "Mensal", "Receita": 60000, "Custo Total Vendas": 10000, "Clientes Adquiridos": 10,
         "Custo Ads": 10000, "Lucro Líquido": 40000},
        {"Bloco": "Mensal", "Receita": 40000, "Custo Total Vendas": 5000, "Clientes Adquiridos": 5,
         "Custo Ads": 5000, "Lucro Líquido": 30000},
        {"Bloco": "Resumo Geral", "Métrica": "Visitantes no site", "Valor": 5000},
        {"Bloco": "Resumo Geral", "Métrica": "Leads Captados via Tráfego Pago", "Valor": 250},
        {"Bloco": "Resumo Geral", "Receita Total": 8000},
    ]
