from fastapi import FastAPI
from api import endpoints

app = FastAPI(title='Manutenção de Sessões de Monitoramento')
app.include_router(endpoints.router)
