from lxml import etree


def make_rpc(guts):
    return "<rpc>{guts}</rpc>".format(guts=guts)


def edit_config(
    config,
    target="running",
    default_operation=None,
    test_option=None,
    error_option=None,
):
    pieces = []

    pieces.append("<edit-config>")
    pieces.append("<target><{}/></target>".format(target))
    if default_operation:
        pieces.append(
            "<default-operation>{}</default-operation>".format(default_operation)
        )
    if test_option:
        pieces.append("<test-option>{}</test-option>".format(test_option))
    if error_option:
        pieces.append("<error-option>{}</error-option>".format(error_option))
    pieces.append(config)
    pieces.append("</edit-config>")
    return "".join(pieces)


def get(filter=None):
    if not filter:
        return "<get/>"
    return "<get>{}</get>".format(filter)


def get_config(source="running", filter=None):
    pieces = []
    pieces.append("<get-config>")
    pieces.append("<source><{}/></source>".format(source))
    if filter:
        pieces.append(filter)
    pieces.append("</get-config>")
    return "".join(pieces)


def copy_config(target, source):
    pieces = []
    pieces.append("<copy-config>")
    pieces.append("<target><{}/></target>".format(target))
    if source.startswith("<config"):
        pieces.append("<source>{}</source>".format(source))
    else:
        pieces.append("<source><{}/></source>".format(source))
    pieces.append("</copy-config>")
    return "".join(pieces)


def delete_config(target):
    return "<delete-config><target><{}/></target></delete-config>".format(target)


def discard_changes():
    return "<discard-changes/>"


def commit(confirmed=False, confirm_timeout=None):
    pieces = []
    pieces.append("<commit>")
    if confirmed:
        pieces.append("<confirmed/>")
    if confirm_timeout:
        pieces.append("<confirm-timeout>{}</confirm-timeout>".format(confirm_timeout))
    pieces.append("</commit>")
    return "".join(pieces)


def lock(target):
    return "<lock><target><{}/></target></lock>".format(target)


def unlock(target):
    return "<unlock><target><{}/></target></unlock>".format(target)


def kill_session(session_id):
    return "<kill-session><session-id>{}</session-id></kill-session>".format(
        session_id
    )


def close_session():
    return "<close-session/>"


def validate(source):
    pieces = []
    pieces.append("<validate>")
    if etree.iselement(source):
        pieces.append(
            "<source>{}</source>".format(etree.tostring(source).decode("utf-8"))
        )
    else:
        pieces.append("<source><{}/></source>".format(source))
    pieces.append("</validate>")
    return "".join(pieces)
