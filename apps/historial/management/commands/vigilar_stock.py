"""
Comando para vigilar el stock en vivo

Se suscribe a la colección de productos y registra en el log cada
producto que entra en nivel crítico o medio.
"""

import logging
import time

from django.core.management.base import BaseCommand

from apps.historial.reportes import NivelStock, clasificar_stock
from services.firestore_service import get_document_store

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Escucha cambios de productos y alerta cuando el stock baja de los umbrales'

    def add_arguments(self, parser):
        parser.add_argument(
            '--once',
            action='store_true',
            help='Revisar el stock una sola vez en lugar de quedar escuchando'
        )

    def handle(self, *args, **options):
        self.niveles = {}
        store = get_document_store()

        if options['once']:
            self.revisar(store.consultar('productos', orden='createdAt'))
            return

        self.stdout.write(self.style.SUCCESS('🔔 Vigilando stock de productos'))
        cancelar = store.suscribir('productos', self.revisar, orden='createdAt')

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('🛑 Vigilancia detenida por usuario'))
        finally:
            cancelar()

    def revisar(self, documentos):
        """Compara el nivel de cada producto con el último visto y alerta los cambios"""
        vistos = set()
        for doc in documentos:
            producto_id = doc['id']
            vistos.add(producto_id)
            try:
                cantidad = int(doc.get('quantity') or 0)
                nivel = clasificar_stock(cantidad)
            except (TypeError, ValueError):
                logger.warning(f"Producto {producto_id} con stock inválido: {doc.get('quantity')!r}")
                continue

            if self.niveles.get(producto_id) == nivel:
                continue
            self.niveles[producto_id] = nivel

            nombre = doc.get('name', producto_id)
            if nivel == NivelStock.CRITICO:
                logger.warning(f"⚠️ STOCK CRÍTICO: {nombre} - {cantidad} unidades")
            elif nivel == NivelStock.MEDIO:
                logger.info(f"Stock medio: {nombre} - {cantidad} unidades")

        for producto_id in set(self.niveles) - vistos:
            del self.niveles[producto_id]
