# Template configuration for the SMS Backup & Restore export

XML_HEADER = "<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>\n"
SMSES_OPEN_TEMPLATE = '<smses count="{count}">\n'
SMSES_CLOSE = "</smses>\n"

# SMS XML template for individual text-only messages
SMS_XML_TEMPLATE = '  <sms protocol="0" address="{address}" date="{time}" type="{type}" subject="null" body="{message}" toa="null" sc_toa="null" service_center="null" read="1" status="1" locked="0"{contact_name} />\n'

# MMS XML template for group conversations and messages with media
MMS_XML_TEMPLATE = """  <mms address="{participants}" ct_t="application/vnd.wap.multipart.related" date="{time}" m_type="{m_type}" msg_box="{msg_box}" read="1" rr="129" seen="1" sub_id="1" text_only="{text_only}"{contact_name}>
    <parts>
{parts}    </parts>
    <addrs>
{participants_xml}    </addrs>
  </mms>
"""

# MMS part templates
TEXT_PART_TEMPLATE = '      <part ct="text/plain" seq="{seq}" text="{text}" />\n'
MEDIA_PART_TEMPLATE = '      <part seq="{seq}" ct="{type}" name="{name}" chset="null" cd="null" fn="null" cid="&lt;{name}&gt;" cl="{name}" ctt_s="null" ctt_t="null" text="null" data="{data}" />\n'
PARTICIPANT_TEMPLATE = '      <addr address="{number}" charset="106" type="{code}" />\n'
CONTACT_NAME_ATTRIBUTE = ' contact_name="{name}"'

# MMS constants
MMS_SENT_M_TYPE = 128
MMS_RECEIVED_M_TYPE = 132
MMS_SENT_MSG_BOX = 2
MMS_RECEIVED_MSG_BOX = 1
ADDR_SENDER_TYPE = 137
ADDR_RECIPIENT_TYPE = 151
