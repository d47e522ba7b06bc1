from flask import Flask, render_template, request, redirect, url_for, session, flash, send_file, jsonify
from functools import wraps
import dataclasses
import io
import json
import logging
import os
import uuid

from recibos_caja.config import Config

# Sistema de profiling interno
from recibos_caja.performance_logger import init_profiling, configure as configure_profiling

from recibos_caja.models import ReceiptSearchFilters
from recibos_caja.repositories import SessionExpiredError
from recibos_caja.services import allowed_actions
from recibos_caja.services.results import failure

# ═══════════════════════════════════════════════════════════════════════════
# CONTENEDOR DE DEPENDENCIAS - Servicios y Repositorios
# ═══════════════════════════════════════════════════════════════════════════
# Las rutas sólo leen el formulario, llaman a un servicio y convierten el
# resultado {'ok', 'error'} en un flash. Ninguna ruta conoce URLs del backend.
# ═══════════════════════════════════════════════════════════════════════════
from recibos_caja.app_container import AppContainer, get_container

logger = logging.getLogger(__name__)

app = Flask(__name__)


def configure_app(config=None, http=None) -> Flask:
    """
    Aplica la configuración y reinicia el contenedor de dependencias.

    Args:
        config: Config / TestingConfig
        http: Sesión HTTP (requests.Session o doble de pruebas)
    """
    config = config or Config
    config.warn_if_insecure()
    app.config.from_object(config)
    app.secret_key = config.SECRET_KEY
    configure_profiling(enabled=config.ENABLE_PROFILING)
    AppContainer.reset_instance()
    get_container(config, http)
    return app


configure_app(Config)


def _current_username():
    return get_container().session_context.username


# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZAR SISTEMA DE PROFILING
# ═══════════════════════════════════════════════════════════════════════════
# Mide rendimiento de rutas y de llamadas al API. Logs en /logs/
# Para desactivar: RECIBOS_PROFILING=0
init_profiling(app, user_getter=_current_username)

# Compuertas de acciones disponibles en las plantillas
app.jinja_env.globals['allowed_actions'] = allowed_actions


# ═══════════════════════════════════════════════════════════════════════════
# SEGURIDAD: login, CSRF, encabezados
# ═══════════════════════════════════════════════════════════════════════════

def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        ctx = get_container().session_context
        if not ctx.token:
            flash("Debes iniciar sesión.", "warning")
            return redirect(url_for("login", next=request.path))
        if ctx.is_expired():
            # El manejador de SessionExpiredError limpia la sesión y redirige
            raise SessionExpiredError('Token expirado')
        return f(*args, **kwargs)
    return wrapper


def generate_csrf_token():
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


@app.context_processor
def inject_csrf_token():
    ctx = get_container().session_context
    return {
        'csrf_token': generate_csrf_token(),
        'current_user': ctx.user if ctx.token else None,
    }


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method == 'POST':
            token = session.get('csrf_token')
            form_token = (
                request.form.get('csrf_token') or
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken')
            )
            if not form_token and request.is_json:
                json_data = request.get_json(silent=True) or {}
                form_token = json_data.get('csrf_token')

            if not token or not form_token or token != form_token:
                if request.path.startswith('/api/'):
                    return {"ok": False, "error": "CSRF token inválido"}, 403
                flash('Sesión expirada. Por favor intenta de nuevo.', 'warning')
                if not get_container().session_context.token:
                    return redirect(url_for('login'))
                return redirect(url_for('receipts'))
        return f(*args, **kwargs)
    return wrapper


@app.after_request
def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS solo detrás de HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


@app.errorhandler(SessionExpiredError)
def handle_session_expired(e):
    """
    Token expirado o 401 del backend: la sesión ya se limpió en el ApiClient;
    se vuelve a limpiar aquí por si el error vino de login_required.
    """
    get_container().session_context.clear('expired')
    logger.warning("Sesión expirada en %s %s: %s", request.method, request.path, e.message)
    if request.path.startswith('/api/'):
        return {"ok": False, "error": "Sesión expirada"}, 401
    flash("Sesión expirada. Inicia sesión nuevamente.", "warning")
    if request.path.startswith('/auth/'):
        return render_template("login.html"), 401
    return redirect(app.config.get('LOGIN_PATH') or url_for('login'))


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def _flash_result(result, message=None):
    """Convierte el resultado de un servicio en un toast."""
    if result.get('ok'):
        if message:
            flash(message, "success")
    else:
        flash(result.get('error') or 'Ocurrió un error', "danger")
    return result.get('ok')


def _guarded(action, key, operation):
    """
    Ejecuta una acción que muta datos bajo el InFlightGuard.
    Un segundo envío mientras la primera sigue en curso se rechaza.
    """
    container = get_container()
    user = container.session_context.username
    with container.inflight.hold(user, action, key) as acquired:
        if not acquired:
            return failure('La operación ya está en proceso. Espera a que termine.')
        return operation()


def _send_download(download):
    return send_file(
        io.BytesIO(download.content),
        mimetype=download.content_type,
        as_attachment=True,
        download_name=download.filename,
    )


def _search_filters():
    return ReceiptSearchFilters.from_args(request.args, app.config.get('SEARCH_PAGE_SIZE', 50))


def _local_url(url, default):
    """Sólo rutas locales; evita redirecciones abiertas."""
    if not url or not url.startswith('/') or url.startswith('//'):
        return default
    return url


def _receipts_back():
    """Regresa a la página de recibos conservando la búsqueda activa."""
    return redirect(_local_url(request.form.get('next'), url_for('receipts')))


def _receipt_json(receipt):
    data = dataclasses.asdict(receipt)
    data['estatus'] = int(receipt.estatus) if receipt.estatus is not None else None
    data['estatus_nombre'] = receipt.estatus_nombre
    return data


# ═══════════════════════════════════════════════════════════════════════════
# PROTECCIÓN DE RUTAS SENSIBLES
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/logs/<path:filename>')
def block_sensitive_routes(filename):
    """Bloquea acceso a la carpeta de logs."""
    return "Not Found", 404


# ═══════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/auth/v2/login", methods=["GET", "POST"])
@verify_csrf
def login():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip()
        password = request.form.get("password") or ""
        result = get_container().auth_service.login(email, password)
        if not result['ok']:
            flash(result['error'], "danger")
            return redirect(url_for("login"))
        session.permanent = True
        flash(f"Bienvenido, {_current_username()}.", "success")
        return redirect(_local_url(request.args.get("next"), url_for("receipts")))
    return render_template("login.html", production_mode=app.config.get('PRODUCTION_MODE'))


@app.route("/logout")
@login_required
def logout():
    get_container().auth_service.logout()
    flash("Sesión cerrada.", "info")
    return redirect(url_for("login"))


@app.route("/")
@login_required
def index():
    return redirect(url_for("receipts"))


# ═══════════════════════════════════════════════════════════════════════════
# RECIBOS: búsqueda, cancelar / reversar, descargas
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/recibos")
@login_required
def receipts():
    """
    Búsqueda avanzada. Cambiar filtros NO busca: sólo el botón "Buscar"
    (buscar=1 en la URL) dispara la consulta al backend.
    """
    filters = _search_filters()
    result = None
    if request.args.get("buscar") == "1":
        outcome = get_container().receipt_service.search(filters)
        if outcome['ok']:
            result = outcome['result']
            filters = outcome['filters']
        else:
            flash(outcome['error'], "danger")
    return render_template(
        "receipts.html",
        filters=filters,
        result=result,
        query=request.query_string.decode('utf-8'),
    )


@app.route("/recibos/<int:id_recibo>/cancelar", methods=["POST"])
@login_required
@verify_csrf
def cancel_receipt(id_recibo):
    motivo = request.form.get("motivo") or ""
    result = _guarded('cancelar', id_recibo, lambda: get_container().receipt_service.cancel(
        id_recibo, motivo, _current_username()
    ))
    if result['ok']:
        receipt = result['receipt']
        flash(f"Recibo {receipt.folio or id_recibo} cancelado.", "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/recibos/<int:id_recibo>/reversar", methods=["POST"])
@login_required
@verify_csrf
def reverse_receipt(id_recibo):
    motivo = request.form.get("motivo") or ""
    result = _guarded('reversar', id_recibo, lambda: get_container().receipt_service.reverse(
        id_recibo, motivo, _current_username()
    ))
    if result['ok']:
        receipt = result['receipt']
        flash(f"Pagos del recibo {receipt.folio or id_recibo} reversados.", "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/recibos/exportar.csv")
@login_required
def export_receipts_csv():
    container = get_container()
    outcome = container.receipt_service.search(_search_filters())
    if not outcome['ok']:
        flash(outcome['error'], "danger")
        return redirect(url_for("receipts", **request.args))
    export = container.export_service.export_receipts(outcome['result'].recibos)
    if not export['ok']:
        flash(export['error'], "warning")
        return redirect(url_for("receipts", **request.args))
    return _send_download(export['download'])


@app.route("/recibos/exportar.xlsx")
@login_required
def export_receipts_excel():
    result = get_container().receipt_service.export_excel(_search_filters())
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("receipts", **request.args))
    return _send_download(result['download'])


@app.route("/recibos/<int:id_recibo>/pdf")
@login_required
def receipt_pdf(id_recibo):
    result = get_container().receipt_service.download_pdf(id_recibo)
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("receipts"))
    return _send_download(result['download'])


@app.route("/recibos/cartera-vencida")
@login_required
def overdue_report():
    result = get_container().receipt_service.overdue_report(
        request.args.get('idPeriodoAcademico', type=int),
        request.args.get('diasVencidoMinimo', type=int),
    )
    if not result['ok']:
        return jsonify(result), 502
    return jsonify({"ok": True, "report": result['report']})


@app.route("/recibos/recalcular", methods=["POST"])
@login_required
@verify_csrf
def recalculate_receipts():
    form = request.form
    key = (form.get("id_estudiante"), form.get("id_periodo_academico"))
    result = _guarded('recalcular-recibos', key, lambda: get_container().receipt_service.recalculate(
        form.get("id_estudiante"), form.get("id_periodo_academico")
    ))
    if result['ok']:
        flash(f"Recibos recalculados: {result['result'].recibos_actualizados}.", "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


# ═══════════════════════════════════════════════════════════════════════════
# API JSON (para la tabla de recibos)
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/api/recibos/<int:id_recibo>/acciones")
@login_required
def api_receipt_actions(id_recibo):
    """Qué acciones del ciclo de vida están habilitadas para el recibo."""
    result = get_container().receipt_service.get(id_recibo)
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 404
    receipt = result['receipt']
    return jsonify({
        "ok": True,
        "idRecibo": receipt.id_recibo,
        "estatus": receipt.estatus_nombre,
        "acciones": result['actions'],
    })


@app.route("/api/recibos/estadisticas")
@login_required
def api_receipt_statistics():
    result = get_container().receipt_service.statistics(request.args.get('idPeriodoAcademico', type=int))
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True, "estadisticas": dataclasses.asdict(result['statistics'])})


@app.route("/api/recibos/admin")
@login_required
def api_receipts_admin():
    """Listado administrativo; `estatus` puede repetirse."""
    args = request.args
    result = get_container().receipt_service.list_admin(
        args.get('idPeriodoAcademico'),
        args.get('idEstudiante'),
        args.getlist('estatus') or None,
        args.get('soloVencidos') in ('1', 'true'),
        args.get('matricula'),
        args.get('folio'),
    )
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 400
    page = result['result']
    return jsonify({
        "ok": True,
        "totalRegistros": page.total_registros,
        "recibos": [_receipt_json(r) for r in page.recibos],
    })


@app.route("/api/recibos/folio/<path:folio>")
@login_required
def api_receipt_by_folio(folio):
    result = get_container().receipt_service.find_by_folio(folio)
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 404
    return jsonify({"ok": True, "recibo": _receipt_json(result['receipt']), "acciones": result['actions']})


@app.route("/api/caja/recibos-pendientes")
@login_required
def api_pending_receipts():
    result = get_container().cash_register_service.pending_receipts(request.args.get('criterio', ''))
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 400
    return jsonify({"ok": True, "data": result['data']})


@app.route("/api/catalogos/medios-pago")
@login_required
def api_payment_methods():
    result = get_container().payment_service.payment_methods()
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True, "medios": [dataclasses.asdict(m) for m in result['methods']]})


# ═══════════════════════════════════════════════════════════════════════════
# ASPIRANTES: recibos iniciales y generación
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/aspirantes/<int:id_aspirante>/recibos")
@login_required
def applicant_receipts(id_aspirante):
    """Siempre se vuelve a consultar al backend; no hay caché."""
    container = get_container()
    listing = container.generation_service.applicant_receipts(id_aspirante)
    if not listing['ok']:
        flash(listing['error'], "danger")
    template = container.generation_service.find_template(id_aspirante)
    if not template['ok']:
        flash(template['error'], "warning")
    return render_template(
        "applicant_receipts.html",
        id_aspirante=id_aspirante,
        receipts=listing.get('receipts', []),
        summary=listing.get('summary'),
        template=template.get('template'),
        default_concept=app.config.get('DEFAULT_CONCEPT'),
        default_due_days=app.config.get('DEFAULT_DUE_DAYS'),
    )


@app.route("/aspirantes/<int:id_aspirante>/recibos/manual", methods=["POST"])
@login_required
@verify_csrf
def generate_manual_receipt(id_aspirante):
    form = request.form
    result = _guarded('generar', id_aspirante, lambda: get_container().generation_service.generate_manual(
        id_aspirante,
        form.get("monto"),
        form.get("concepto"),
        form.get("dias_vencimiento") or None,
    ))
    if result['ok']:
        flash(f"Recibo {result['receipt'].folio} generado.", "success")
    else:
        flash(result['error'], "danger")
    return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))


@app.route("/aspirantes/<int:id_aspirante>/recibos/concepto", methods=["POST"])
@login_required
@verify_csrf
def generate_concept_receipt(id_aspirante):
    form = request.form
    result = _guarded('generar', id_aspirante, lambda: get_container().generation_service.generate_by_concept(
        id_aspirante,
        form.get("id_concepto_pago"),
        form.get("dias_vencimiento") or None,
    ))
    if result['ok']:
        flash(f"Recibo {result['receipt'].folio} generado.", "success")
    else:
        flash(result['error'], "danger")
    return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))


@app.route("/aspirantes/<int:id_aspirante>/recibos/plantilla", methods=["POST"])
@login_required
@verify_csrf
def generate_template_receipts(id_aspirante):
    form = request.form
    purge = form.get("eliminar_pendientes") in ("1", "on", "true")
    result = _guarded('generar', id_aspirante, lambda: get_container().generation_service.generate_from_template(
        id_aspirante,
        form.get("id_plantilla_cobro"),
        purge,
    ))
    if result['ok']:
        flash(f"Se generaron {len(result['receipts'])} recibos desde la plantilla.", "success")
    else:
        flash(result['error'], "danger")
    return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))


@app.route("/aspirantes/<int:id_aspirante>/recibos/<int:id_recibo>/eliminar", methods=["POST"])
@login_required
@verify_csrf
def delete_applicant_receipt(id_aspirante, id_recibo):
    """
    El recibo se resuelve de la lista fresca del aspirante; si tiene pagos
    aplicados (saldo != total) no se manda la petición de borrado.
    """
    container = get_container()
    listing = container.generation_service.applicant_receipts(id_aspirante)
    if not listing['ok']:
        flash(listing['error'], "danger")
        return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))

    receipt = next((r for r in listing['receipts'] if r.id_recibo == id_recibo), None)
    if receipt is None:
        flash("El recibo no pertenece al aspirante.", "warning")
        return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))

    result = _guarded('eliminar', id_recibo,
                      lambda: container.generation_service.delete_applicant_receipt(receipt))
    _flash_result(result, f"Recibo {receipt.folio or id_recibo} eliminado.")
    return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))


@app.route("/aspirantes/<int:id_aspirante>/recalcular-convenio", methods=["POST"])
@login_required
@verify_csrf
def recalculate_agreement(id_aspirante):
    result = _guarded('recalcular-convenio', id_aspirante,
                      lambda: get_container().scholarship_service.recalculate_agreement_discounts(id_aspirante))
    if result['ok']:
        flash(f"Descuentos por convenio recalculados en "
              f"{result['result'].recibos_actualizados} recibos.", "success")
    else:
        flash(result['error'], "danger")
    return redirect(url_for("applicant_receipts", id_aspirante=id_aspirante))


# ═══════════════════════════════════════════════════════════════════════════
# CAJA: pagos y ajustes
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/caja/pago", methods=["POST"])
@login_required
@verify_csrf
def register_payment():
    """Registra y aplica un pago a un solo recibo (atajo de caja)."""
    form = request.form
    id_recibo = form.get("id_recibo", type=int)
    if not id_recibo:
        flash("Recibo inválido.", "warning")
        return _receipts_back()

    container = get_container()

    def operation():
        # Estatus y saldo frescos antes de cobrar
        current = container.receipt_service.get(id_recibo)
        if not current['ok']:
            return current
        return container.payment_service.register_and_apply(
            current['receipt'],
            form.get("monto"),
            form.get("id_medio_pago"),
            form.get("referencia"),
            form.get("notas"),
            _current_username(),
        )

    result = _guarded('pagar', id_recibo, operation)
    if result['ok']:
        outcome = result['result']
        message = f"Pago aplicado: ${outcome.monto_aplicado:,.2f}. Saldo: ${outcome.saldo_nuevo:,.2f}"
        if result['status_changed'] and result['new_status'] is not None:
            message += f" (recibo {result['new_status'].label})"
        flash(message, "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/caja/pagos/aplicar", methods=["POST"])
@login_required
@verify_csrf
def apply_payment():
    """
    Liquidación de varios recibos con un pago: registrar y luego aplicar.
    Form: monto, id_medio_pago, aplicaciones = JSON [{idReciboDetalle, monto}]
    """
    form = request.form
    try:
        lines = json.loads(form.get("aplicaciones") or "[]")
    except ValueError:
        flash("Formato de aplicaciones inválido.", "danger")
        return _receipts_back()
    if not isinstance(lines, list):
        flash("Formato de aplicaciones inválido.", "danger")
        return _receipts_back()

    result = _guarded('aplicar', None, lambda: get_container().payment_service.register_then_apply(
        form.get("monto"),
        form.get("id_medio_pago"),
        lines,
        form.get("referencia"),
        form.get("notas"),
    ))
    if result['ok']:
        flash(f"Pago {result['id_pago']} aplicado a {len(result['aplicaciones'])} renglones.", "success")
    elif result.get('id_pago'):
        flash(f"El pago {result['id_pago']} quedó registrado pero no se aplicó: {result['error']}", "warning")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/caja/pagos/<int:id_pago>/cancelar", methods=["POST"])
@login_required
@verify_csrf
def cancel_payment(id_pago):
    result = _guarded('cancelar-pago', id_pago, lambda: get_container().payment_service.cancel_payment(
        id_pago, request.form.get("motivo"), request.form.get("autorizado_por") or _current_username()
    ))
    _flash_result(result, f"Pago {id_pago} cancelado.")
    return _receipts_back()


@app.route("/api/pagos/<int:id_pago>")
@login_required
def api_payment(id_pago):
    result = get_container().payment_service.get_payment(id_pago)
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 404
    payment = result['payment']
    return jsonify({"ok": True, "idPago": id_pago, "pago": payment.to_dict()})


@app.route("/caja/pagos/<int:id_pago>/comprobante")
@login_required
def payment_voucher(id_pago):
    result = get_container().payment_service.download_voucher(id_pago)
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("receipts"))
    return _send_download(result['download'])


@app.route("/caja/recibos/<int:id_recibo>/detalles/<int:id_detalle>", methods=["POST"])
@login_required
@verify_csrf
def modify_receipt_line(id_recibo, id_detalle):
    result = _guarded('ajustar', id_recibo, lambda: get_container().payment_service.modify_detail_amount(
        id_recibo, id_detalle, request.form.get("nuevo_monto"), request.form.get("motivo")
    ))
    if result['ok']:
        adjustment = result['adjustment']
        flash(f"Renglón modificado. Nuevo total: ${adjustment.nuevo_total:,.2f}", "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/caja/recibos/<int:id_recibo>/recargo", methods=["POST"])
@login_required
@verify_csrf
def modify_receipt_surcharge(id_recibo):
    """accion=condonar quita el recargo; cualquier otra lo fija en nuevo_recargo."""
    form = request.form
    payment_service = get_container().payment_service
    if form.get("accion") == "condonar":
        result = _guarded('ajustar', id_recibo,
                          lambda: payment_service.waive_surcharge(id_recibo, form.get("motivo")))
        _flash_result(result, result.get('message'))
    else:
        result = _guarded('ajustar', id_recibo, lambda: payment_service.modify_surcharge(
            id_recibo, form.get("nuevo_recargo"), form.get("motivo")
        ))
        if result['ok']:
            flash(f"Recargo modificado. Nuevo total: ${result['adjustment'].nuevo_total:,.2f}", "success")
        else:
            flash(result['error'], "danger")
    return _receipts_back()


# ═══════════════════════════════════════════════════════════════════════════
# CAJA: corte
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/caja/corte", methods=["GET", "POST"])
@login_required
@verify_csrf
def cash_cut():
    container = get_container()
    cashiers = container.cash_register_service.cashiers()
    if not cashiers['ok']:
        flash(cashiers['error'], "warning")

    summary = None
    form_values = {}
    if request.method == "POST":
        form_values = {
            'fecha_inicio': request.form.get("fecha_inicio") or "",
            'fecha_fin': request.form.get("fecha_fin") or "",
            'id_usuario_caja': request.form.get("id_usuario_caja") or "",
        }
        result = container.cash_register_service.generate(
            form_values['fecha_inicio'], form_values['fecha_fin'], form_values['id_usuario_caja']
        )
        if result['ok']:
            summary = result['summary']
        else:
            flash(result['error'], "danger")

    return render_template(
        "cash_cut.html",
        cashiers=cashiers.get('cashiers', []),
        summary=summary,
        form_values=form_values,
        cut=None,
    )


@app.route("/caja/corte/cerrar", methods=["POST"])
@login_required
@verify_csrf
def close_cash_cut():
    form = request.form
    key = (form.get("fecha_inicio"), form.get("fecha_fin"), form.get("id_usuario_caja") or None)
    result = _guarded('cerrar-corte', key, lambda: get_container().cash_register_service.close(
        form.get("fecha_inicio"),
        form.get("fecha_fin"),
        form.get("id_usuario_caja"),
        form.get("monto_inicial"),
        form.get("observaciones"),
        _current_username(),
    ))
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("cash_cut"))
    cut = result['cut']
    flash(f"Corte {cut.folio_corte_caja} cerrado.", "success")
    return redirect(url_for("cash_cut_detail", id_corte=cut.id_corte_caja))


@app.route("/caja/corte/pdf", methods=["POST"])
@login_required
@verify_csrf
def preview_cash_cut_pdf():
    """PDF del corte generado, antes de cerrarlo."""
    form = request.form
    result = get_container().cash_register_service.preview_pdf(
        form.get("fecha_inicio"), form.get("fecha_fin"), form.get("id_usuario_caja")
    )
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("cash_cut"))
    return _send_download(result['download'])


@app.route("/api/caja/cortes")
@login_required
def api_cash_cuts():
    args = request.args
    result = get_container().cash_register_service.list(
        args.get('usuarioId') or None, args.get('fechaInicio') or None, args.get('fechaFin') or None
    )
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True, "cortes": [dataclasses.asdict(c) for c in result['cuts']]})


@app.route("/caja/cortes/<int:id_corte>")
@login_required
def cash_cut_detail(id_corte):
    result = get_container().cash_register_service.get(id_corte)
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("cash_cut"))
    return render_template("cash_cut.html", cashiers=[], summary=None, form_values={}, cut=result['cut'])


@app.route("/caja/cortes/<int:id_corte>/pdf")
@login_required
def cash_cut_pdf(id_corte):
    result = get_container().cash_register_service.download_pdf(id_corte)
    if not result['ok']:
        flash(result['error'], "danger")
        return redirect(url_for("cash_cut"))
    return _send_download(result['download'])


# ═══════════════════════════════════════════════════════════════════════════
# BECAS
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/becas/recalcular", methods=["POST"])
@login_required
@verify_csrf
def recalculate_scholarships():
    form = request.form
    id_estudiante = form.get("id_estudiante")
    result = _guarded('recalcular-becas', id_estudiante,
                      lambda: get_container().scholarship_service.recalculate_scholarship_discounts(
                          id_estudiante, form.get("id_periodo_academico")
                      ))
    if result['ok']:
        flash(f"Descuentos por beca recalculados en "
              f"{result['result'].recibos_actualizados} recibos.", "success")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/api/becas/estudiante/<int:id_estudiante>")
@login_required
def api_student_scholarships(id_estudiante):
    solo_activas = request.args.get('soloActivas')
    result = get_container().scholarship_service.student_scholarships(
        id_estudiante, None if solo_activas is None else solo_activas in ('1', 'true')
    )
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True, "becas": [dataclasses.asdict(b) for b in result['scholarships']]})


def _flash_recalculation(recalculation, prefix):
    """La asignación ya ocurrió; si el recálculo falla sólo se advierte."""
    if recalculation['ok']:
        flash(f"{prefix} Descuentos recalculados en "
              f"{recalculation['result'].recibos_actualizados} recibos.", "success")
    else:
        flash(f"{prefix} No se recalcularon los descuentos: {recalculation['error']}", "warning")


@app.route("/becas/asignar", methods=["POST"])
@login_required
@verify_csrf
def assign_scholarship():
    form = request.form
    key = (form.get("id_estudiante"), form.get("id_beca"))
    result = _guarded('asignar-beca', key, lambda: get_container().scholarship_service.assign_from_catalog(
        form.get("id_estudiante"),
        form.get("id_beca"),
        form.get("vigencia_desde"),
        form.get("id_periodo_academico"),
        form.get("vigencia_hasta"),
        form.get("observaciones"),
    ))
    if result['ok']:
        _flash_recalculation(result['recalculation'], "Beca asignada.")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


@app.route("/becas/<int:id_beca_asignacion>/desactivar", methods=["POST"])
@login_required
@verify_csrf
def deactivate_scholarship(id_beca_asignacion):
    id_estudiante = request.form.get("id_estudiante", type=int)
    if not id_estudiante:
        flash("Estudiante inválido.", "warning")
        return _receipts_back()
    result = _guarded('desactivar-beca', id_beca_asignacion,
                      lambda: get_container().scholarship_service.deactivate(id_beca_asignacion, id_estudiante))
    if result['ok']:
        _flash_recalculation(result['recalculation'], "Beca desactivada.")
    else:
        flash(result['error'], "danger")
    return _receipts_back()


# ═══════════════════════════════════════════════════════════════════════════
# ADMINISTRACIÓN: usuarios de Azure AD
# ═══════════════════════════════════════════════════════════════════════════

@app.route("/admin/usuarios-azure", methods=["GET", "POST"])
@login_required
@verify_csrf
def azure_users():
    service = get_container().directory_service

    if request.method == "POST":
        form = request.form
        result = _guarded('crear-usuario', None, lambda: service.create_user(
            form.get("given_name"),
            form.get("surname"),
            form.get("domain"),
            form.get("password"),
            job_title=form.get("job_title"),
            department=form.get("department"),
        ))
        _flash_result(result, f"Cuenta {result.get('user_principal_name')} creada.")
        return redirect(url_for("azure_users", q=form.get("q") or None))

    term = request.args.get("q", "")
    listing = service.list_users(term, request.args.get("page", 1, type=int))
    if not listing['ok']:
        flash(listing['error'], "danger")
    domains = service.domains()
    return render_template(
        "azure_users.html",
        term=term,
        page=listing.get('page'),
        enabled=listing.get('enabled', 0),
        domains=domains.get('domains', []) if domains['ok'] else [],
    )


@app.route("/admin/usuarios-azure/<user_id>/estado", methods=["POST"])
@login_required
@verify_csrf
def toggle_azure_user(user_id):
    enabled = request.form.get("habilitar") == "1"
    result = _guarded('editar-usuario', user_id, lambda: get_container().directory_service.update_user(
        user_id, {'accountEnabled': enabled}
    ))
    _flash_result(result, "Cuenta habilitada." if enabled else "Cuenta deshabilitada.")
    return redirect(url_for("azure_users", q=request.form.get("q") or None))


@app.route("/admin/usuarios-azure/<user_id>/restablecer", methods=["POST"])
@login_required
@verify_csrf
def reset_azure_user_password(user_id):
    result = _guarded('restablecer', user_id,
                      lambda: get_container().directory_service.reset_password(user_id))
    if result['ok']:
        flash(f"Contraseña temporal: {result['password']}", "info")
    else:
        flash(result['error'], "danger")
    return redirect(url_for("azure_users", q=request.form.get("q") or None))


@app.route("/admin/usuarios-azure/<user_id>/eliminar", methods=["POST"])
@login_required
@verify_csrf
def delete_azure_user(user_id):
    result = _guarded('eliminar-usuario', user_id,
                      lambda: get_container().directory_service.delete_user(user_id))
    _flash_result(result, "Cuenta eliminada.")
    return redirect(url_for("azure_users", q=request.form.get("q") or None))


@app.route("/api/correo/<mailbox>/mensajes")
@login_required
def api_mail_messages(mailbox):
    args = request.args
    result = get_container().directory_service.messages(
        mailbox, args.get('q', ''), args.get('noLeidos') == '1', args.get('top', 50, type=int)
    )
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True, "mensajes": [dataclasses.asdict(m) for m in result['messages']]})


@app.route("/api/correo/<mailbox>/enviar", methods=["POST"])
@login_required
@verify_csrf
def api_send_mail(mailbox):
    data = request.get_json(silent=True) or {}
    to = data.get('to') or []
    cc = data.get('cc') or []
    if isinstance(to, str):
        to = [to]
    if isinstance(cc, str):
        cc = [cc]
    result = get_container().directory_service.send_message(
        mailbox, to, data.get('subject'), data.get('body'), cc, data.get('isHtml', False)
    )
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 400
    return jsonify({"ok": True})


@app.route("/api/correo/<mailbox>/mensajes/<message_id>/leido", methods=["POST"])
@login_required
@verify_csrf
def api_mark_mail_read(mailbox, message_id):
    result = get_container().directory_service.mark_as_read(mailbox, message_id)
    if not result['ok']:
        return {"ok": False, "error": result['error']}, 502
    return jsonify({"ok": True})


if __name__ == "__main__":
    # Para producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))
    app.run(host=HOST, port=PORT, debug=DEBUG)
